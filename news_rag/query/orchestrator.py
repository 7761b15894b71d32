"""
RAG Orchestrator

Composes the end-to-end query-answering operation:
1. Query normalization and cache lookup
2. Query embedding generation
3. Similarity retrieval from the vector store
4. Title deduplication and grounding-set truncation
5. Grounded answer generation
6. Cache population and citation assembly

Identical queries that miss the cache concurrently share one computation.
Stages run in the caller's thread, so concurrent queries never wait on a
shared worker pool.
"""

import logging
import threading
import time
from concurrent.futures import Future
from typing import Any, Callable, Dict, List, Sequence

from ..embeddings.ollama_service import OllamaEmbeddingService
from ..errors import (
    EmbeddingServiceError,
    InternalError,
    NewsRAGError,
    PipelineError,
    ServiceError,
    ValidationError,
)
from ..generation.ollama_llm import OllamaGenerationService
from ..models import QueryAnswer, RetrievedMatch
from ..readiness import Readiness
from ..storage.vector_store import VectorStore
from .response_cache import ResponseCache, compute_query_hash, normalize_query

logger = logging.getLogger(__name__)

STAGE_EMBEDDING = "embedding"
STAGE_RETRIEVAL = "retrieval"
STAGE_GENERATION = "generation"


def dedupe_by_title(matches: Sequence[RetrievedMatch]) -> List[RetrievedMatch]:
    """
    Drop matches whose title was already seen, keeping first-seen order.

    The index returns matches by descending score, so the highest-scoring
    copy of a syndicated article is the one kept.
    """
    seen_titles = set()
    unique = []
    for match in matches:
        if match.title in seen_titles:
            continue
        seen_titles.add(match.title)
        unique.append(match)
    return unique


class RAGOrchestrator:
    """
    Answers questions from the ingested news corpus.

    Owns the cache-or-compute decision, retrieval, deduplication and
    grounding-set selection. Session bookkeeping is left to the caller.
    """

    def __init__(
        self,
        embedding_service: OllamaEmbeddingService,
        vector_store: VectorStore,
        generation_service: OllamaGenerationService,
        response_cache: ResponseCache,
        readiness: Readiness,
        top_k: int = 5,
        max_grounding_documents: int = 4
    ):
        """
        Initialize the orchestrator.

        Args:
            embedding_service: Client producing the query embedding
            vector_store: Index searched for nearest articles
            generation_service: Client producing the grounded answer
            response_cache: Cache of answers by normalized-query hash
            readiness: Initialization state; queries require READY
            top_k: Number of matches to retrieve
            max_grounding_documents: Unique matches passed to the generator
        """
        self.embedding_service = embedding_service
        self.vector_store = vector_store
        self.generation_service = generation_service
        self.response_cache = response_cache
        self.readiness = readiness
        self.top_k = top_k
        self.max_grounding_documents = max_grounding_documents

        # Pending computations keyed by query hash
        self._in_flight: Dict[str, Future] = {}
        self._in_flight_lock = threading.Lock()

    def answer_query(self, message: str) -> QueryAnswer:
        """
        Answer a question, from cache when possible.

        Args:
            message: User's question

        Returns:
            QueryAnswer with the answer text and the cited matches
            (no citations on a cache hit)

        Raises:
            ValidationError: If message is empty
            NotReady: If ingestion has not completed
            PipelineError: If embedding, retrieval or generation fails
            InternalError: On any other failure inside a stage
        """
        if not message or not message.strip():
            raise ValidationError("Message cannot be empty")

        self.readiness.require_ready()

        normalized = normalize_query(message)
        query_hash = compute_query_hash(message)

        cached = self.response_cache.get(query_hash)
        if cached is not None:
            logger.debug(f"Cache hit for query hash {query_hash[:8]}")
            return QueryAnswer(answer_text=cached, cited_matches=[], cached=True)

        with self._in_flight_lock:
            pending = self._in_flight.get(query_hash)
            is_leader = pending is None
            if is_leader:
                pending = Future()
                self._in_flight[query_hash] = pending

        if not is_leader:
            logger.info(f"Joining in-flight computation for query hash {query_hash[:8]}")
            return pending.result()

        try:
            # A previous leader may have finished between the lookup and the claim
            cached = self.response_cache.peek(query_hash)
            if cached is not None:
                answer = QueryAnswer(answer_text=cached, cited_matches=[], cached=True)
            else:
                answer = self._compute(normalized, query_hash)
        except BaseException as e:
            pending.set_exception(e)
            raise
        else:
            pending.set_result(answer)
            return answer
        finally:
            with self._in_flight_lock:
                self._in_flight.pop(query_hash, None)

    def _compute(self, normalized: str, query_hash: str) -> QueryAnswer:
        """Run embed -> search -> dedupe -> generate and cache the result."""
        start_time = time.time()
        logger.info(f"Processing query: \"{normalized}\"")

        query_vector = self._run_stage(STAGE_EMBEDDING, self._embed, normalized)

        matches = self._run_stage(
            STAGE_RETRIEVAL, self.vector_store.search, query_vector, self.top_k
        )
        logger.info(f"Found {len(matches)} relevant articles")

        unique_matches = dedupe_by_title(matches)
        grounding = self.select_grounding(unique_matches)

        answer_text = self._run_stage(
            STAGE_GENERATION, self.generation_service.generate, normalized, grounding
        )

        self.response_cache.put(query_hash, answer_text)

        logger.info(f"Answered query in {time.time() - start_time:.2f}s")
        return QueryAnswer(answer_text=answer_text, cited_matches=unique_matches)

    def select_grounding(self, unique_matches: Sequence[RetrievedMatch]) -> List[RetrievedMatch]:
        """Bound the grounding set to the configured number of documents."""
        return list(unique_matches[:self.max_grounding_documents])

    def _embed(self, normalized: str):
        return self.embedding_service.embed_query(normalized)

    def _run_stage(self, stage: str, fn: Callable[..., Any], *args) -> Any:
        """
        Run one stage in the calling thread.

        Time bounds are enforced by the clients themselves: the embedding
        and generation requests carry their own timeouts and raise a
        service error when they expire.

        Raises:
            PipelineError: Wrapping the stage's service error
            InternalError: If the call fails in any other way
        """
        try:
            return fn(*args)

        except ServiceError as e:
            logger.error(f"Pipeline stage '{stage}' failed: {e}")
            raise PipelineError(stage, e) from e

        except NewsRAGError:
            raise

        except Exception as e:
            logger.exception(f"Unexpected error in pipeline stage '{stage}'")
            raise InternalError(f"Unexpected error in stage '{stage}': {e}") from e

    def health_check(self) -> Dict[str, Any]:
        """Report readiness, index size and embedding service reachability."""
        health = {
            'status': 'healthy',
            'state': self.readiness.state.value,
            'isInitialized': self.readiness.is_ready,
            'articlesCount': None,
            'embeddingService': 'reachable',
            'cache': self.response_cache.stats()
        }

        try:
            health['articlesCount'] = self.vector_store.count()
        except Exception as e:
            logger.error(f"Health check failed: {e}")
            health['status'] = 'error'
            health['error'] = str(e)

        try:
            self.embedding_service.verify_connection()
        except EmbeddingServiceError as e:
            logger.warning(f"Embedding service unreachable: {e}")
            health['status'] = 'error'
            health['embeddingService'] = 'unreachable'
            health['error'] = str(e)

        return health
