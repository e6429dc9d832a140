"""Self-check workflow. Results are logged, not reported as events."""

from actions import VetAction
from operations import RUN_VET, ApplyRequest
from workflows import register_workflow


@register_workflow
class OctarineVet:
    """Check cluster access and the dataplane installation."""

    name = RUN_VET
    description = 'Run the Octarine self-check'
    reports_events = False

    def get_phases(self, request: ApplyRequest) -> list[tuple[str, object, str]]:
        return [
            ('vet', VetAction('vet'), 'Check cluster and dataplane'),
        ]
