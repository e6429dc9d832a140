"""Book Info demo application workflow.

Install: opt the namespace into sidecar injection, copy the registry
secret from the dataplane namespace, apply the demo manifest.
Remove: delete the demo manifest's objects.
"""

from actions import ApplyManifestAction, CopySecretAction, FetchManifestAction, LabelNamespaceAction
from operations import INSTALL_BOOK_INFO, ApplyRequest
from workflows import register_workflow


@register_workflow
class BookInfoInstall:
    """Deploy or remove the canonical Book Info application."""

    name = INSTALL_BOOK_INFO
    description = 'Install the canonical Book Info Application'
    error_subject = 'the canonical Book Info App'
    success_subject = 'Book Info app'
    details_subject = 'The canonical Book Info app'

    def get_phases(self, request: ApplyRequest) -> list[tuple[str, object, str]]:
        phases: list[tuple[str, object, str]] = []
        if not request.delete_op:
            phases += [
                ('label_namespace', LabelNamespaceAction('injection'), 'Enable sidecar injection'),
                ('copy_registry_secret', CopySecretAction('registry'), 'Copy registry credentials'),
            ]
        phases += [
            ('fetch_demo', FetchManifestAction('book-info', 'demo_manifest'), 'Fetch Book Info manifest'),
            ('apply_demo', ApplyManifestAction('book-info'),
             'Remove Book Info' if request.delete_op else 'Apply Book Info'),
        ]
        return phases
