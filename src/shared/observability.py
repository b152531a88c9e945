"""Warning hook for non-fatal data-loss paths."""

import logging
from typing import Any, Callable, Dict

logger = logging.getLogger(__name__)

# Receives an event name and structured details
WarningHook = Callable[[str, Dict[str, Any]], None]


def log_warning(event: str, details: Dict[str, Any]) -> None:
    """Default hook: report the event through logging."""
    logger.warning(f"{event}: {details}")
