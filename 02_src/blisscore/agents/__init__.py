"""Pipeline stages."""

from .actions import ActionDispatcher, ActionHandler
from .composer import (
    APOLOGY_TEXT,
    IActionDetector,
    MarkerActionDetector,
    ResponseComposer,
)
from .normalizer import InputNormalizer, UnderstandingAgent
from .retrieval import DEFAULT_KNOWLEDGE, ContextRetriever, IKnowledgeSource, KeywordIndex
from .sentiment import SentimentAnalyzer
from .summarizer import (
    CHAT_SUMMARY_POLICY,
    JOURNAL_SUMMARY_POLICY,
    POLICIES_BY_SESSION_TYPE,
    ConversationSummarizer,
    SummaryPolicy,
)

__all__ = [
    "ActionDispatcher",
    "ActionHandler",
    "APOLOGY_TEXT",
    "IActionDetector",
    "MarkerActionDetector",
    "ResponseComposer",
    "InputNormalizer",
    "UnderstandingAgent",
    "DEFAULT_KNOWLEDGE",
    "ContextRetriever",
    "IKnowledgeSource",
    "KeywordIndex",
    "SentimentAnalyzer",
    "CHAT_SUMMARY_POLICY",
    "JOURNAL_SUMMARY_POLICY",
    "POLICIES_BY_SESSION_TYPE",
    "ConversationSummarizer",
    "SummaryPolicy",
]
