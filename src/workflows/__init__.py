"""Install workflow definitions and execution."""

import logging
import threading
import time
from dataclasses import replace
from typing import Any, Optional, Protocol, runtime_checkable

from common import ActionResult
from cluster_client.session import Session
from event_stream import Event
from operations import ApplyRequest

logger = logging.getLogger(__name__)


@runtime_checkable
class Workflow(Protocol):
    """Protocol for workflow definitions.

    Class attributes:
        name: Operation key the workflow serves (e.g., 'octarine_install')
        description: Human-readable description
        error_subject: Object named in failure summaries
        success_subject: Object named in success summaries
        details_subject: Object named in success details
        reports_events: If False, outcomes are only logged (default: True)
    """
    name: str
    description: str

    def get_phases(self, request: ApplyRequest) -> list[tuple[str, Any, str]]:
        """Return list of (phase_name, action, description) tuples."""
        ...


def resolve_request(workflow: Any, request: ApplyRequest, session: Session) -> tuple[ApplyRequest, Session]:
    """Let a workflow fill request defaults before it is scheduled.

    Workflows may define resolve(request, session); the caller's request
    object is never modified.
    """
    request = replace(request)
    resolve = getattr(workflow, 'resolve', None)
    if resolve is None:
        return request, session
    resolved: tuple[ApplyRequest, Session] = resolve(request, session)
    return resolved


class WorkflowRunner:
    """Runs one workflow for one request and reports its outcome."""

    def __init__(self, workflow: Workflow, session: Session, request: ApplyRequest):
        self.workflow = workflow
        self.session = session
        self.request = request
        self.context: dict[str, Any] = {
            'namespace': request.namespace,
            'delete': request.delete_op,
            'username': request.username,
        }

    def _run_phases(self, phases: list, cancel_token: Optional[threading.Event]) -> ActionResult:
        for phase_name, action, description in phases:
            if cancel_token is not None and cancel_token.is_set():
                logger.warning(f"Workflow '{self.workflow.name}' cancelled before phase {phase_name}")
                return ActionResult(success=False, message=f"cancelled before {phase_name}")

            logger.info(f"Running phase: {phase_name} - {description}")
            try:
                result = action.run(self.session, self.context)
            except Exception as e:
                logger.exception(f"Phase {phase_name} raised exception")
                return ActionResult(success=False, message=str(e))

            if not result.success:
                logger.error(f"Phase {phase_name} failed: {result.message}")
                return result

            logger.info(f"Phase {phase_name} passed ({result.duration:.1f}s)")
            self.context.update(result.context_updates or {})
        return ActionResult(success=True)

    def _run_deferred(self) -> None:
        get_deferred = getattr(self.workflow, 'get_deferred_phases', None)
        if get_deferred is None:
            return
        phases = get_deferred(self.request)
        if not phases:
            return
        result = self._run_phases(phases, None)
        if not result.success:
            logger.warning(f"Deferred phases of '{self.workflow.name}' failed: {result.message}")

    def outcome_event(self, result: ActionResult) -> Event:
        delete = self.request.delete_op
        if not result.success:
            return Event.error(
                f"Error while {'removing' if delete else 'deploying'} {self.workflow.error_subject}",
                result.message,
            )
        done = 'removed' if delete else 'deployed'
        return Event.info(
            f"{self.workflow.success_subject} {done} successfully",
            f"{self.workflow.details_subject} is now {done}.",
        )

    def run(self, cancel_token: Optional[threading.Event] = None) -> ActionResult:
        """Run all phases, then deferred phases; report the outcome."""
        verb = 'removal' if self.request.delete_op else 'install'
        logger.info(f"Starting workflow '{self.workflow.name}' ({verb}) in namespace: {self.request.namespace}")
        start_time = time.time()

        try:
            result = self._run_phases(self.workflow.get_phases(self.request), cancel_token)
        finally:
            self._run_deferred()

        result.duration = time.time() - start_time
        logger.info(f"Workflow '{self.workflow.name}' {'succeeded' if result.success else 'failed'} "
                    f"in {result.duration:.1f}s")

        if getattr(self.workflow, 'reports_events', True):
            self.session.events.publish(self.outcome_event(result))
        return result


# Registry of available workflows, keyed by operation name
_workflows: dict[str, type] = {}


def register_workflow(cls: type) -> type:
    """Decorator to register a workflow class."""
    _workflows[cls.name] = cls
    return cls


def get_workflow(name: str) -> Workflow:
    """Get a workflow instance by operation name."""
    if name not in _workflows:
        available = list(_workflows.keys())
        raise ValueError(f"Unknown workflow: {name}. Available: {available}")
    workflow: Workflow = _workflows[name]()
    return workflow


def has_workflow(name: str) -> bool:
    return name in _workflows


def list_workflows() -> list[str]:
    """List registered workflow names."""
    return sorted(_workflows.keys())


# Import workflows to trigger registration
from workflows import octarine  # noqa: E402, F401
from workflows import book_info  # noqa: E402, F401
from workflows import vet  # noqa: E402, F401
