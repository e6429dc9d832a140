"""Octarine dataplane install workflow.

Install: provision support objects, render the dataplane manifest for the
namespace, apply it.
Remove: render the manifest, delete its objects, then always tear down the
support objects, even if the removal failed.
"""

from actions import ApplyManifestAction, FetchManifestAction
from cluster_client.session import Session
from operations import INSTALL_OCTARINE, ApplyRequest
from workflows import register_workflow


@register_workflow
class OctarineInstall:
    """Deploy or remove the Octarine dataplane."""

    name = INSTALL_OCTARINE
    description = 'Install the latest version of Octarine'
    error_subject = 'Octarine'
    success_subject = 'Octarine'
    details_subject = 'The latest version of Octarine'

    def resolve(self, request: ApplyRequest, session: Session) -> tuple[ApplyRequest, Session]:
        """Default the namespace and make it the session's dataplane."""
        if not request.namespace:
            request.namespace = session.config.dataplane_namespace
        return request, session.with_dataplane(request.namespace)

    def get_phases(self, request: ApplyRequest) -> list[tuple[str, object, str]]:
        phases: list[tuple[str, object, str]] = []
        if not request.delete_op:
            phases += [
                ('fetch_support', FetchManifestAction('support', 'support_manifest', 'support_manifest'),
                 'Render support objects'),
                ('provision_support', ApplyManifestAction('support', 'support_manifest'),
                 'Create support objects'),
            ]
        phases += [
            ('fetch_dataplane', FetchManifestAction('dataplane', 'dataplane_manifest'),
             'Render dataplane manifest'),
            ('apply_dataplane', ApplyManifestAction('dataplane'),
             'Remove dataplane' if request.delete_op else 'Apply dataplane'),
        ]
        return phases

    def get_deferred_phases(self, request: ApplyRequest) -> list[tuple[str, object, str]]:
        if not request.delete_op:
            return []
        return [
            ('fetch_support', FetchManifestAction('support', 'support_manifest', 'support_manifest'),
             'Render support objects'),
            ('teardown_support', ApplyManifestAction('support', 'support_manifest', delete=True),
             'Delete support objects'),
        ]
