"""Common types shared by actions and workflows."""

import time
from dataclasses import dataclass, field


@dataclass
class ActionResult:
    """Result returned by an action."""
    success: bool
    message: str = ''
    duration: float = 0.0
    context_updates: dict = field(default_factory=dict)


def failed(message: str, start: float) -> ActionResult:
    """Build a failed result timed from ``start``."""
    return ActionResult(success=False, message=message, duration=time.time() - start)


def succeeded(message: str, start: float, **context_updates) -> ActionResult:
    """Build a successful result timed from ``start``."""
    return ActionResult(
        success=True,
        message=message,
        duration=time.time() - start,
        context_updates=context_updates,
    )
