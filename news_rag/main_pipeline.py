"""
Main Pipeline System

Wires all components into the news query system and drives the
one-time initialization that gates queries:
- Document loading
- Embedding generation
- Vector storage and index persistence
- Readiness transition
- Chat and session operations for the transport layer
"""

import logging
from typing import Any, Dict, List, Optional

from tqdm import tqdm

from .config import Config, get_config
from .embeddings.ollama_service import OllamaEmbeddingService
from .errors import InitializationError
from .generation.ollama_llm import OllamaGenerationService
from .ingestion.document_loader import load_documents
from .models import Document
from .query.handler import QueryHandler, Response
from .query.orchestrator import RAGOrchestrator
from .query.response_cache import ResponseCache
from .query.session_store import SessionStore
from .readiness import Readiness
from .storage.vector_store import VectorStore

logger = logging.getLogger(__name__)


class NewsQuerySystem:
    """
    Main system that integrates all components.

    Provides high-level methods for:
    - Initialization from a documents file or an in-memory document list
    - Reusing a previously saved index
    - Chat and session management
    - Statistics and health reporting
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        embedding_service: Optional[OllamaEmbeddingService] = None,
        vector_store: Optional[VectorStore] = None,
        generation_service: Optional[OllamaGenerationService] = None,
        response_cache: Optional[ResponseCache] = None,
        session_store: Optional[SessionStore] = None,
        readiness: Optional[Readiness] = None
    ):
        """
        Initialize the news query system.

        Args:
            config: Configuration (default: global configuration)
            embedding_service: Embedding client (or None for default)
            vector_store: Vector store (or None for default)
            generation_service: Generation client (or None for default)
            response_cache: Response cache (or None for default)
            session_store: Session store (or None for default)
            readiness: Readiness state (or None for a fresh one)
        """
        self.config = config or get_config()
        cfg = self.config

        self.embedding_service = embedding_service or OllamaEmbeddingService(
            model=cfg.embedding_model,
            base_url=cfg.ollama_base_url,
            batch_size=cfg.embedding_batch_size,
            batch_delay=cfg.embedding_batch_delay,
            dimensions=cfg.embedding_dimension,
            timeout=cfg.embedding_timeout
        )
        self.vector_store = vector_store or VectorStore(
            index_path=cfg.index_path,
            collection_name=cfg.collection_name,
            dimension=cfg.embedding_dimension
        )
        self.generation_service = generation_service or OllamaGenerationService(
            llm_model=cfg.llm_model,
            temperature=cfg.temperature,
            max_tokens=cfg.max_tokens,
            ollama_base_url=cfg.ollama_base_url,
            timeout=cfg.generation_timeout
        )
        self.response_cache = response_cache or ResponseCache(
            ttl=cfg.cache_ttl,
            max_entries=cfg.cache_max_entries
        )
        self.session_store = session_store or SessionStore(ttl=cfg.session_ttl)
        self.readiness = readiness or Readiness()

        self.orchestrator = RAGOrchestrator(
            embedding_service=self.embedding_service,
            vector_store=self.vector_store,
            generation_service=self.generation_service,
            response_cache=self.response_cache,
            readiness=self.readiness,
            top_k=cfg.top_k,
            max_grounding_documents=cfg.max_grounding_documents
        )
        self.query_handler = QueryHandler(self.orchestrator, self.session_store)

        logger.info("NewsQuerySystem initialized successfully")

    def initialize(
        self,
        documents: Optional[List[Document]] = None,
        show_progress: bool = True,
        persist: bool = True,
        replace_existing: bool = True
    ) -> Dict[str, Any]:
        """
        Ingest the corpus and mark the system ready.

        Runs at most once. On failure the system stays not-ready until
        the process restarts.

        Args:
            documents: Documents to ingest (default: load from config.documents_file)
            show_progress: Show an embedding progress bar
            persist: Save the index to disk after ingestion
            replace_existing: Drop previously stored points instead of accumulating

        Returns:
            Dictionary with success flag and article count

        Raises:
            InitializationError: If loading, embedding or storing fails
        """
        self.readiness.begin()
        logger.info("Starting RAG pipeline initialization...")

        try:
            if documents is None:
                documents = load_documents(self.config.documents_file)

            if not documents:
                raise InitializationError("No articles to ingest")

            embeddings = self._embed_documents(documents, show_progress)
            if replace_existing and self.vector_store.count():
                logger.info(f"Replacing {self.vector_store.count()} previously stored articles")
                self.vector_store.clear()
            self.vector_store.add_documents(documents, embeddings)

            if persist and self.vector_store.index_path:
                self.vector_store.save_index()

        except Exception as e:
            self.readiness.mark_failed(str(e))
            if isinstance(e, InitializationError):
                raise
            raise InitializationError(f"Error initializing RAG pipeline: {e}") from e

        self.readiness.mark_ready()
        logger.info(f"Successfully initialized with {self.vector_store.count()} articles")

        return {
            'success': True,
            'articlesCount': len(documents)
        }

    def _embed_documents(self, documents: List[Document], show_progress: bool):
        if not show_progress:
            return self.embedding_service.embed_documents(documents)

        with tqdm(total=len(documents), desc="Embedding articles") as progress:
            def update(current: int, total: int) -> None:
                progress.update(current - progress.n)

            return self.embedding_service.embed_documents(documents, progress_callback=update)

    def load_existing_index(self) -> bool:
        """
        Mark the system ready from a previously saved, non-empty index.

        Returns:
            True if the system is now ready
        """
        self.readiness.begin()

        if self.vector_store.count() == 0 and not self.vector_store.load_index():
            self.readiness.mark_failed("No saved index available")
            return False

        if self.vector_store.count() == 0:
            self.readiness.mark_failed("Saved index is empty")
            return False

        self.readiness.mark_ready()
        logger.info(f"Using saved index with {self.vector_store.count()} articles")
        return True

    def chat(self, session_id: str, message: str) -> Response:
        """Answer a message within a session (transport-shaped response)."""
        return self.query_handler.handle_chat({'sessionId': session_id, 'message': message})

    def create_session(self) -> str:
        return self.session_store.create()

    def get_history(self, session_id: str) -> Response:
        return self.query_handler.get_history(session_id)

    def delete_session(self, session_id: str) -> Response:
        return self.query_handler.delete_session(session_id)

    def list_sessions(self) -> Response:
        return self.query_handler.list_sessions()

    def purge_expired(self) -> Dict[str, int]:
        """
        Drop expired cache entries and idle sessions.

        Returns:
            Number of removed entries per store
        """
        return {
            'cache': self.response_cache.purge_expired(),
            'sessions': self.session_store.purge_expired()
        }

    def get_stats(self) -> Dict[str, Any]:
        """
        Get system statistics.

        Returns:
            Dictionary with statistics
        """
        return {
            'state': self.readiness.state.value,
            'vector_store_stats': self.vector_store.get_stats(),
            'cache_stats': self.response_cache.stats(),
            'session_stats': self.session_store.stats()
        }

    def health_check(self) -> Dict[str, Any]:
        """Health of the pipeline and the session store."""
        return {
            'rag': self.orchestrator.health_check(),
            'sessions': {
                'status': 'healthy',
                'type': 'memory-storage',
                **self.session_store.stats()
            }
        }

    def shutdown(self) -> None:
        """Release the embedding client's HTTP connections."""
        self.embedding_service.close()
