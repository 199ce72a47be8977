"""Execution of actions detected in generated replies."""

from typing import Awaitable, Callable

from ..logging_config import get_logger
from ..models import ActionResult

logger = get_logger(__name__)

ActionHandler = Callable[[dict], Awaitable[dict]]


class ActionDispatcher:
    """Registry of async handlers keyed by action identifier."""

    def __init__(self) -> None:
        self._handlers: dict[str, ActionHandler] = {}

    def register(self, action: str, handler: ActionHandler) -> None:
        self._handlers[action] = handler

    def handles(self, action: str) -> bool:
        return action in self._handlers

    async def dispatch(self, action: str, context: dict) -> ActionResult:
        """Run the handler for action. Errors are reported, not raised."""
        handler = self._handlers.get(action)
        if handler is None:
            return ActionResult(success=False, error="Unknown action type")

        try:
            result = await handler(context)
        except Exception as e:
            logger.error(f"Action {action} failed: {e}", exc_info=True)
            return ActionResult(success=False, error=str(e))

        return ActionResult(success=True, result=result)
