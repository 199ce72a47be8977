"""Retrieval-augmented context lookup over a keyword index."""

import asyncio
import math
import re
from collections import Counter
from typing import Protocol

from ..logging_config import get_logger
from ..models import ContextDocument, StageError, StageResult
from ..resilience import call_capability

logger = get_logger(__name__)

DEFAULT_KNOWLEDGE = [
    ContextDocument(
        content="Our counseling services are available 24/7",
        source="FAQ #123",
    ),
    ContextDocument(
        content="You can book appointments through our mobile app",
        source="User Guide",
    ),
]

_TOKEN_PATTERN = re.compile(r"[a-z0-9']+")

STOPWORDS = frozenset(
    """
    a an and are as at be but by can do for from how i if in is it its me my
    of on or our so that the their them there this to was we what when where
    which who will with you your
    """.split()
)


def tokenize(text: str) -> list[str]:
    return [
        token
        for token in _TOKEN_PATTERN.findall(text.lower())
        if token not in STOPWORDS
    ]


class IKnowledgeSource(Protocol):
    """Where the retrieval corpus lives."""

    async def get_knowledge_documents(self) -> list[ContextDocument]:
        ...


class KeywordIndex:
    """Inverted index ranking documents by idf-weighted term overlap."""

    def __init__(self, documents: list[ContextDocument]):
        self._documents = list(documents)
        self._postings: dict[str, set[int]] = {}
        for doc_id, document in enumerate(self._documents):
            for term in set(tokenize(document.content)):
                self._postings.setdefault(term, set()).add(doc_id)

    def __len__(self) -> int:
        return len(self._documents)

    def _idf(self, term: str) -> float:
        df = len(self._postings.get(term, ()))
        return math.log(1 + len(self._documents) / df) if df else 0.0

    def search(self, query: str, top_k: int) -> list[ContextDocument]:
        scores: Counter[int] = Counter()
        for term in set(tokenize(query)):
            weight = self._idf(term)
            for doc_id in self._postings.get(term, ()):
                scores[doc_id] += weight

        ranked = sorted(scores.items(), key=lambda item: (-item[1], item[0]))
        return [self._documents[doc_id] for doc_id, score in ranked[:top_k] if score > 0]


class ContextRetriever:
    """Read-only knowledge lookup. Any error yields no context."""

    def __init__(
        self,
        source: IKnowledgeSource,
        top_k: int = 3,
        timeout: float | None = 2.0,
    ):
        self._source = source
        self._top_k = top_k
        self._timeout = timeout
        self._index: KeywordIndex | None = None
        self._load_lock = asyncio.Lock()

    async def refresh(self) -> int:
        """Rebuild the index from the knowledge source."""
        documents = await self._source.get_knowledge_documents()
        self._index = KeywordIndex(documents)
        logger.info(f"Knowledge index built with {len(documents)} documents")
        return len(documents)

    async def _ensure_index(self) -> KeywordIndex:
        async with self._load_lock:
            if self._index is None:
                await self.refresh()
        return self._index

    async def retrieve(self, text: str, user_id: str) -> StageResult[list[ContextDocument]]:
        try:
            index = await call_capability(self._ensure_index(), self._timeout)
            documents = index.search(text, self._top_k)
        except StageError as e:
            logger.warning(f"Retrieval for {user_id} returned no context ({e.kind.value}): {e}")
            return StageResult.failure([], e.kind, str(e))

        return StageResult.success(documents)
