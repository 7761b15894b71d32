"""
Data model for documents, retrieval results and store entries.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Dict, Any, Optional


def to_iso(timestamp: float) -> str:
    """Render an epoch timestamp as an ISO-8601 UTC string."""
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).isoformat()


@dataclass(frozen=True)
class Document:
    """An ingested news article. Immutable once ingested."""
    title: str
    content: str
    url: str = ""
    published_at: Optional[str] = None
    source: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Document":
        """
        Build a document from a raw article dictionary.

        Accepts both ``publishedAt`` and ``published_at`` keys.
        """
        return cls(
            title=data.get('title', '') or '',
            content=data.get('content', '') or '',
            url=data.get('url', '') or '',
            published_at=data.get('publishedAt', data.get('published_at')),
            source=data.get('source', '') or ''
        )

    def embedding_text(self, max_chars: int = 8000) -> str:
        """Text used to embed the document (title + content, truncated)."""
        return f"{self.title} {self.content}"[:max_chars]


@dataclass(frozen=True)
class RetrievedMatch:
    """A document returned by similarity search for one query."""
    document: Document
    score: float
    rank: int

    @property
    def title(self) -> str:
        return self.document.title

    def to_citation(self) -> Dict[str, Any]:
        return {
            'title': self.document.title,
            'url': self.document.url,
            'score': self.score
        }


@dataclass(frozen=True)
class CacheEntry:
    """A previously generated answer keyed by normalized query hash."""
    query_hash: str
    answer_text: str
    created_at: float

    def is_expired(self, now: float, ttl: float) -> bool:
        return now - self.created_at >= ttl


@dataclass(frozen=True)
class MessageEntry:
    """One question/answer exchange in a session."""
    id: str
    timestamp: float
    user_message: str
    bot_response: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'timestamp': to_iso(self.timestamp),
            'userMessage': self.user_message,
            'botResponse': self.bot_response
        }


@dataclass
class Session:
    """
    A conversation owned by the SessionStore.

    Messages are append-only and ordered by arrival; last_activity_at
    advances on every append.
    """
    session_id: str
    created_at: float
    last_activity_at: float
    messages: List[MessageEntry] = field(default_factory=list)

    @property
    def message_count(self) -> int:
        return len(self.messages)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'sessionId': self.session_id,
            'createdAt': to_iso(self.created_at),
            'lastActivity': to_iso(self.last_activity_at),
            'messages': [message.to_dict() for message in self.messages]
        }

    def summary(self) -> Dict[str, Any]:
        return {
            'sessionId': self.session_id,
            'createdAt': to_iso(self.created_at),
            'lastActivity': to_iso(self.last_activity_at),
            'messageCount': self.message_count
        }


@dataclass
class QueryAnswer:
    """Result of answering one query."""
    answer_text: str
    cited_matches: List[RetrievedMatch] = field(default_factory=list)
    cached: bool = False

    def citations(self) -> List[Dict[str, Any]]:
        return [match.to_citation() for match in self.cited_matches]
