"""Tests for ConversationSummarizer."""

import json
from unittest.mock import AsyncMock, Mock

import pytest

from blisscore.agents import (
    CHAT_SUMMARY_POLICY,
    JOURNAL_SUMMARY_POLICY,
    POLICIES_BY_SESSION_TYPE,
    ConversationSummarizer,
)
from blisscore.models import ErrorKind, SessionType


def make_llm(**kwargs):
    llm = Mock()
    llm.complete = AsyncMock(**kwargs)
    return llm


class TestChatSummary:
    """Tests for the chat summary policy."""

    async def test_summarize_merges_exchange(self):
        """Test that the request carries old summary and new exchange."""
        llm = make_llm(return_value=" User plans to run a 5k. ")
        summarizer = ConversationSummarizer(llm)

        result = await summarizer.summarize("I want to run a 5k", "Great goal!", "User likes sport.")

        assert result.ok
        assert result.value == "User plans to run a 5k."
        call_args = llm.complete.call_args
        request = call_args.kwargs["messages"][0]["content"]
        assert "Old Summary: User likes sport." in request
        assert "User: I want to run a 5k\nBot: Great goal!" in request
        assert call_args.kwargs["system"] == CHAT_SUMMARY_POLICY.instructions
        assert call_args.kwargs["max_tokens"] == 500

    async def test_first_summary(self):
        """Test the placeholder when there is no previous summary."""
        llm = make_llm(return_value="New summary")
        summarizer = ConversationSummarizer(llm)

        await summarizer.summarize("hi", "hello", "")

        request = llm.complete.call_args.kwargs["messages"][0]["content"]
        assert "Old Summary: No Old Summary" in request

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"side_effect": RuntimeError("LLM API error")},
            {"return_value": ""},
            {"return_value": "   "},
        ],
    )
    async def test_failure_keeps_old_summary(self, kwargs):
        """Test that the previous summary survives any failure unchanged."""
        summarizer = ConversationSummarizer(make_llm(**kwargs))

        result = await summarizer.summarize("u", "b", "old summary")

        assert result.value == "old summary"
        assert not result.ok


class TestJournalSummary:
    """Tests for the structured journal policy."""

    async def test_structured_summary(self):
        """Test the JSON summary is normalized and returned."""
        summary = {
            "emotions": ["tired"],
            "majorEvents": ["moved house"],
            "keyDiscussions": [],
            "cbtExercises": [],
            "followUps": ["check sleep"],
            "userObjectives": [],
        }
        llm = make_llm(return_value=f"```json\n{json.dumps(summary)}\n```")
        summarizer = ConversationSummarizer(llm, policy=JOURNAL_SUMMARY_POLICY)

        result = await summarizer.summarize("We moved today", "That is a big day.", "")

        assert result.ok
        assert json.loads(result.value) == summary
        call_args = llm.complete.call_args
        assert call_args.kwargs["max_tokens"] == 300
        assert '"emotions": []' in call_args.kwargs["messages"][0]["content"]

    async def test_malformed_structured_summary_keeps_old(self):
        """Test that non-JSON output never replaces the journal summary."""
        old = json.dumps({"emotions": ["calm"]})
        summarizer = ConversationSummarizer(
            make_llm(return_value="Today the user moved."), policy=JOURNAL_SUMMARY_POLICY
        )

        result = await summarizer.summarize("u", "b", old)

        assert result.value == old
        assert result.error == ErrorKind.MALFORMED


def test_policies_by_session_type():
    """Test that each session type has its own policy."""
    assert POLICIES_BY_SESSION_TYPE[SessionType.CHAT] is CHAT_SUMMARY_POLICY
    assert POLICIES_BY_SESSION_TYPE[SessionType.JOURNAL] is JOURNAL_SUMMARY_POLICY
