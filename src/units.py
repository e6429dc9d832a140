"""Background workflow units.

Each background operation runs in its own daemon thread. The caller gets a
WorkflowTask straight away, holding a Future for the outcome and a
cancellation token. Units are not pooled, so every request gets its own
thread.
"""

import logging
import threading
from concurrent.futures import Future
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


@dataclass
class WorkflowTask:
    """Handle for one running workflow unit."""
    name: str
    future: Future = field(default_factory=Future)
    cancel_token: threading.Event = field(default_factory=threading.Event)
    thread: Optional[threading.Thread] = None

    def cancel(self) -> None:
        """Ask the unit to stop before its next phase."""
        self.cancel_token.set()

    @property
    def cancelled(self) -> bool:
        return self.cancel_token.is_set()

    def done(self) -> bool:
        return self.future.done()

    def result(self, timeout: Optional[float] = None) -> Any:
        return self.future.result(timeout=timeout)


def spawn(name: str, target: Callable[..., Any], *args, **kwargs) -> WorkflowTask:
    """Run ``target(cancel_token, *args, **kwargs)`` in a new unit."""
    task = WorkflowTask(name=name)

    def _run():
        if not task.future.set_running_or_notify_cancel():
            return
        try:
            result = target(task.cancel_token, *args, **kwargs)
        except Exception as e:
            logger.exception(f"Workflow unit '{name}' raised")
            task.future.set_exception(e)
        else:
            task.future.set_result(result)

    task.thread = threading.Thread(target=_run, name=f'workflow-{name}', daemon=True)
    task.thread.start()
    logger.debug(f"Spawned workflow unit '{name}'")
    return task
