"""
Ollama Embedding Service

Generates dense text embeddings through Ollama's embed API.
Provides direct API integration with:
- Connection verification
- Batched requests with a fixed inter-batch delay for upstream rate limits
- Dimension verification of every returned vector
- Bounded request timeouts surfaced as EmbeddingServiceError
"""

import logging
import time
from typing import Callable, List, Optional, Sequence

import numpy as np
import requests

from ..errors import EmbeddingServiceError
from ..models import Document

logger = logging.getLogger(__name__)

MAX_BATCH_SIZE = 10
MIN_BATCH_DELAY = 1.0


class OllamaEmbeddingService:
    """
    Embedding client for Ollama's local embedding models.

    ``embed`` keeps input order and returns exactly one vector per input.
    """

    EXPECTED_DIMENSIONS = 768  # nomic-embed-text produces 768-dimensional embeddings

    def __init__(
        self,
        model: str = "nomic-embed-text",
        base_url: str = "http://localhost:11434",
        batch_size: int = MAX_BATCH_SIZE,
        batch_delay: float = MIN_BATCH_DELAY,
        dimensions: int = EXPECTED_DIMENSIONS,
        timeout: float = 10,
        session: Optional[requests.Session] = None,
        sleep: Callable[[float], None] = time.sleep
    ):
        """
        Initialize the Ollama embedding service.

        Args:
            model: Ollama model name (default: nomic-embed-text)
            base_url: Ollama base URL
            batch_size: Number of texts per request (at most 10)
            batch_delay: Seconds to wait between batches (at least 1.0)
            dimensions: Expected embedding dimensionality
            timeout: Request timeout in seconds
            session: Optional requests session (connection pooling)
            sleep: Sleep function used between batches
        """
        if not 1 <= batch_size <= MAX_BATCH_SIZE:
            raise ValueError(f"batch_size must be between 1 and {MAX_BATCH_SIZE}, got {batch_size}")
        if batch_delay < MIN_BATCH_DELAY:
            raise ValueError(f"batch_delay must be at least {MIN_BATCH_DELAY}, got {batch_delay}")

        self.model = model
        self.base_url = base_url.rstrip('/')
        self.batch_size = batch_size
        self.batch_delay = batch_delay
        self.dimensions = dimensions
        self.timeout = timeout
        self._http = session or requests.Session()
        self._sleep = sleep

        logger.info(f"Initialized OllamaEmbeddingService with model: {self.model}")
        logger.info(f"Batch size: {self.batch_size}, Batch delay: {self.batch_delay}s")

    def verify_connection(self) -> bool:
        """
        Verify connection to the Ollama service.

        Returns:
            True if connection successful

        Raises:
            EmbeddingServiceError: If unable to connect
        """
        try:
            response = self._http.get(f"{self.base_url}/api/tags", timeout=self.timeout)
            response.raise_for_status()
            logger.info("Successfully connected to Ollama service")
            return True

        except requests.exceptions.ConnectionError:
            raise EmbeddingServiceError(
                f"Unable to connect to Ollama at {self.base_url}. "
                "Please ensure Ollama is running (try: ollama serve)"
            )
        except requests.exceptions.Timeout:
            raise EmbeddingServiceError(
                f"Connection to Ollama timed out after {self.timeout}s"
            )
        except requests.exceptions.RequestException as e:
            raise EmbeddingServiceError(f"Error connecting to Ollama: {e}")

    def _verify_embedding_dimensions(self, embedding: np.ndarray) -> None:
        actual_dims = len(embedding)
        if actual_dims != self.dimensions:
            raise EmbeddingServiceError(
                f"Expected {self.dimensions} dimensions, got {actual_dims}"
            )

    def _request_batch(self, batch: Sequence[str]) -> List[np.ndarray]:
        """
        Embed one batch with a single API call.

        Raises:
            EmbeddingServiceError: On transport, HTTP, quota or shape failure
        """
        try:
            response = self._http.post(
                f"{self.base_url}/api/embed",
                json={
                    "model": self.model,
                    "input": list(batch)
                },
                timeout=self.timeout
            )
            response.raise_for_status()
            vectors = response.json()['embeddings']

        except requests.exceptions.ConnectionError:
            raise EmbeddingServiceError(
                f"Unable to connect to Ollama at {self.base_url}. "
                "Please ensure Ollama is running."
            )
        except requests.exceptions.Timeout:
            raise EmbeddingServiceError(f"Request timed out after {self.timeout}s")
        except requests.exceptions.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            if status == 429:
                raise EmbeddingServiceError("Embedding quota exceeded (HTTP 429)")
            raise EmbeddingServiceError(f"HTTP error from Ollama: {e}")
        except requests.exceptions.RequestException as e:
            raise EmbeddingServiceError(f"Error requesting embeddings: {e}")
        except (KeyError, TypeError, ValueError) as e:
            raise EmbeddingServiceError(f"Unexpected API response format: {e}")

        if len(vectors) != len(batch):
            raise EmbeddingServiceError(
                f"Expected {len(batch)} embeddings, got {len(vectors)}"
            )

        embeddings = []
        for vector in vectors:
            embedding = np.asarray(vector, dtype=np.float32)
            self._verify_embedding_dimensions(embedding)
            embeddings.append(embedding)
        return embeddings

    def embed(
        self,
        texts: Sequence[str],
        progress_callback: Optional[Callable[[int, int], None]] = None
    ) -> List[np.ndarray]:
        """
        Embed texts in batches, one vector per input, in input order.

        Args:
            texts: Ordered sequence of texts
            progress_callback: Optional callback function(current, total)

        Returns:
            List of embedding vectors

        Raises:
            EmbeddingServiceError: If any batch fails
        """
        if not texts:
            return []

        embeddings: List[np.ndarray] = []
        total = len(texts)
        num_batches = (total + self.batch_size - 1) // self.batch_size

        for batch_number, i in enumerate(range(0, total, self.batch_size), 1):
            if batch_number > 1:
                self._sleep(self.batch_delay)

            batch = texts[i:i + self.batch_size]
            if num_batches > 1:
                logger.info(f"Processing batch {batch_number}/{num_batches}")
            embeddings.extend(self._request_batch(batch))

            if progress_callback:
                progress_callback(len(embeddings), total)

        return embeddings

    def embed_query(self, text: str) -> np.ndarray:
        """
        Embed a single query.

        Raises:
            EmbeddingServiceError: If the service fails or returns other than one vector
        """
        embeddings = self.embed([text])
        if len(embeddings) != 1:
            raise EmbeddingServiceError(f"Expected 1 embedding, got {len(embeddings)}")
        return embeddings[0]

    def embed_documents(
        self,
        documents: Sequence[Document],
        progress_callback: Optional[Callable[[int, int], None]] = None
    ) -> List[np.ndarray]:
        """Embed documents using their title and content."""
        logger.info(f"Creating embeddings for {len(documents)} articles")
        embeddings = self.embed(
            [document.embedding_text() for document in documents],
            progress_callback=progress_callback
        )
        logger.info(f"Created {len(embeddings)} embeddings")
        return embeddings

    def close(self) -> None:
        """Close pooled HTTP connections."""
        self._http.close()
