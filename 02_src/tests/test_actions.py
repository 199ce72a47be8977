"""Tests for ActionDispatcher."""

from unittest.mock import AsyncMock

from blisscore.agents import ActionDispatcher
from blisscore.models import ActionResult


class TestActionDispatcher:
    """Tests for ActionDispatcher.dispatch()."""

    async def test_dispatch_registered_handler(self):
        """Test running a registered handler."""
        handler = AsyncMock(return_value={"appointment_id": "a1"})
        dispatcher = ActionDispatcher()
        dispatcher.register("book_appointment", handler)

        result = await dispatcher.dispatch("book_appointment", {"user_id": "user1"})

        assert result == ActionResult(success=True, result={"appointment_id": "a1"})
        handler.assert_awaited_once_with({"user_id": "user1"})

    async def test_unknown_action(self):
        """Test that unknown actions are reported."""
        dispatcher = ActionDispatcher()

        result = await dispatcher.dispatch("fly_to_moon", {})

        assert result == ActionResult(success=False, error="Unknown action type")

    async def test_handler_error_is_captured(self):
        """Test that handler exceptions become a failed result."""
        dispatcher = ActionDispatcher()
        dispatcher.register("book_appointment", AsyncMock(side_effect=RuntimeError("calendar down")))

        result = await dispatcher.dispatch("book_appointment", {})

        assert result.success is False
        assert result.error == "calendar down"

    def test_handles(self):
        """Test handler lookup."""
        dispatcher = ActionDispatcher()
        dispatcher.register("book_appointment", AsyncMock())

        assert dispatcher.handles("book_appointment")
        assert not dispatcher.handles("other")
