"""Rolling conversation summaries, one policy per conversation domain."""

import json
from dataclasses import dataclass

from ..llm import ILLMProvider, parse_json_object
from ..logging_config import get_logger
from ..models import ErrorKind, SessionType, StageError, StageResult
from ..resilience import call_capability

logger = get_logger(__name__)

CHAT_SUMMARY_INSTRUCTIONS = """
Objective: Summarize the provided conversation accurately, retaining all meaningful information, including user intents, context, and significant bot responses, while discarding repetitive or trivial details.
Format: Update the summary incrementally by integrating key points from the new exchange into the old summary.
Priority:
a. Include details about user goals, preferences, or plans.
b. Retain important questions or tasks the user asks for.
c. Summarize the bot's response only when it provides critical or actionable information.
d. Ensure continuity by linking new details to the existing context.
Limitations: Keep the summary concise but informative, ensuring no critical information is lost. Aim for clarity and coherence.
""".strip()

JOURNAL_SUMMARY_INSTRUCTIONS = """
You maintain a structured summary of a user's journal. Merge the new entry into the previous summary.
Keep these keys, each a list of short strings: emotions, majorEvents, keyDiscussions, cbtExercises, followUps, userObjectives.
Keep goals, recurring feelings and open follow-ups; drop small talk and duplicates.
Return only the updated JSON object.
""".strip()

EMPTY_JOURNAL_SUMMARY = {
    "emotions": [],
    "majorEvents": [],
    "keyDiscussions": [],
    "cbtExercises": [],
    "followUps": [],
    "userObjectives": [],
}


@dataclass(frozen=True)
class SummaryPolicy:
    """How one conversation domain folds exchanges into its summary."""

    name: str
    instructions: str
    max_tokens: int
    structured: bool = False


CHAT_SUMMARY_POLICY = SummaryPolicy(
    name="chat",
    instructions=CHAT_SUMMARY_INSTRUCTIONS,
    max_tokens=500,
)

JOURNAL_SUMMARY_POLICY = SummaryPolicy(
    name="journal",
    instructions=JOURNAL_SUMMARY_INSTRUCTIONS,
    max_tokens=300,
    structured=True,
)

POLICIES_BY_SESSION_TYPE = {
    SessionType.CHAT: CHAT_SUMMARY_POLICY,
    SessionType.JOURNAL: JOURNAL_SUMMARY_POLICY,
}


class ConversationSummarizer:
    """Merges each new exchange into the running summary.

    The previous summary is the fallback for every failure, so a bad call
    can never erase accumulated memory.
    """

    def __init__(
        self,
        llm_provider: ILLMProvider,
        policy: SummaryPolicy = CHAT_SUMMARY_POLICY,
        timeout: float | None = 20.0,
    ):
        self._llm = llm_provider
        self._policy = policy
        self._timeout = timeout

    @property
    def policy(self) -> SummaryPolicy:
        return self._policy

    def _build_request(self, new_user_text: str, new_bot_text: str, old_summary: str) -> str:
        if self._policy.structured:
            previous = old_summary or json.dumps(EMPTY_JOURNAL_SUMMARY)
            return (
                f"Previous Summary (JSON): {previous}\n\n"
                f"New Exchange:\nUser: {new_user_text}\nBot: {new_bot_text}\n\n"
                "Update the summary while maintaining previous context. "
                "Return only JSON format."
            )
        return (
            f"Old Summary: {old_summary or 'No Old Summary'}\n\n"
            f"New Exchange:\nUser: {new_user_text}\nBot: {new_bot_text}"
        )

    async def summarize(
        self, new_user_text: str, new_bot_text: str, old_summary: str
    ) -> StageResult[str]:
        request = self._build_request(new_user_text, new_bot_text, old_summary)

        try:
            completion = await call_capability(
                self._llm.complete(
                    messages=[{"role": "user", "content": request}],
                    system=self._policy.instructions,
                    max_tokens=self._policy.max_tokens,
                ),
                self._timeout,
            )
            if self._policy.structured:
                new_summary = json.dumps(parse_json_object(completion))
            else:
                new_summary = (completion or "").strip()
                if not new_summary:
                    raise StageError(ErrorKind.EMPTY, "empty summary")
        except StageError as e:
            logger.warning(
                f"{self._policy.name} summary kept previous value ({e.kind.value}): {e}"
            )
            return StageResult.failure(old_summary, e.kind, str(e))

        return StageResult.success(new_summary)
