"""
Shared fixtures: a controllable clock, sample articles and stubbed
collaborators for the query pipeline.
"""

from unittest.mock import Mock

import numpy as np
import pytest

from news_rag.embeddings.ollama_service import OllamaEmbeddingService
from news_rag.generation.ollama_llm import OllamaGenerationService
from news_rag.models import Document, RetrievedMatch
from news_rag.query.orchestrator import RAGOrchestrator
from news_rag.query.response_cache import ResponseCache
from news_rag.readiness import Readiness
from news_rag.storage.vector_store import VectorStore


class FakeClock:
    """Manually advanced time source."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_document(title: str, content: str = None, source: str = "Wire") -> Document:
    slug = title.lower().replace(' ', '-')
    return Document(
        title=title,
        content=content or f"Full report about {title}.",
        url=f"https://news.example.com/{slug}",
        published_at="2024-05-01T09:00:00Z",
        source=source
    )


def make_match(title: str, score: float, rank: int) -> RetrievedMatch:
    return RetrievedMatch(document=make_document(title), score=score, rank=rank)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sample_documents():
    return [
        make_document("Central bank raises rates", "The central bank raised rates by 25 basis points."),
        make_document("Storm hits coast", "A storm made landfall overnight.", source="Weather Desk"),
        make_document("Election results announced", "Official results were published on Monday."),
    ]


@pytest.fixture
def embedding_service():
    service = Mock(spec=OllamaEmbeddingService)
    service.embed_query.return_value = np.ones(768, dtype=np.float32)
    return service


@pytest.fixture
def vector_store():
    store = Mock(spec=VectorStore)
    store.search.return_value = [
        make_match("A", 0.91, 0),
        make_match("A", 0.90, 1),
        make_match("B", 0.75, 2),
    ]
    store.count.return_value = 3
    return store


@pytest.fixture
def generation_service():
    service = Mock(spec=OllamaGenerationService)
    service.generate.return_value = "Rates went up by 25 basis points."
    return service


@pytest.fixture
def ready():
    readiness = Readiness()
    readiness.begin()
    readiness.mark_ready()
    return readiness


@pytest.fixture
def orchestrator(embedding_service, vector_store, generation_service, ready, clock):
    return RAGOrchestrator(
        embedding_service=embedding_service,
        vector_store=vector_store,
        generation_service=generation_service,
        response_cache=ResponseCache(clock=clock),
        readiness=ready
    )
