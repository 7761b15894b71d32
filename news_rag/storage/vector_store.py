"""
Vector Store with FAISS HNSW Indexing

Cosine-similarity vector store for article embeddings. Vectors are
L2-normalized and indexed in an inner-product HNSW graph, so search
scores are cosine similarities (higher = more similar).
"""

import logging
import os
import pickle
import threading
import uuid
from typing import Dict, List, Optional, Sequence

import faiss
import numpy as np

from ..errors import IndexUnavailable
from ..models import Document, RetrievedMatch

logger = logging.getLogger(__name__)

DEFAULT_COLLECTION = "news_articles"


class VectorStore:
    """
    Vector index over ingested news articles.

    Features:
    - HNSW approximate nearest neighbor search with cosine metric
    - Document metadata kept in sync with the index
    - Fresh point id per stored document (re-ingestion accumulates)
    - Atomic metadata writes on save
    """

    def __init__(
        self,
        index_path: Optional[str] = None,
        collection_name: str = DEFAULT_COLLECTION,
        dimension: int = 768,
        M: int = 32,
        efConstruction: int = 200,
        efSearch: int = 128
    ):
        """
        Initialize the vector store.

        Args:
            index_path: Path to save/load the FAISS index (None = memory only)
            collection_name: Name of the stored collection
            dimension: Dimension of embedding vectors
            M: Number of connections per node in the HNSW graph
            efConstruction: Search depth during index construction
            efSearch: Search depth during queries
        """
        self.index_path = index_path
        self.collection_name = collection_name
        self.dimension = dimension
        self.M = M
        self.efConstruction = efConstruction
        self.efSearch = efSearch

        # Point id and Document per vector, positionally aligned with index ids
        self.metadata: List[Dict] = []
        self._lock = threading.RLock()

        self.index = None
        self._initialize_index()

        if self.index_path and os.path.exists(self.index_path):
            self.load_index()

    def _initialize_index(self) -> None:
        """Initialize a new inner-product HNSW index."""
        self.index = faiss.IndexHNSWFlat(self.dimension, self.M, faiss.METRIC_INNER_PRODUCT)
        self.index.hnsw.efConstruction = self.efConstruction
        self.index.hnsw.efSearch = self.efSearch

    def _normalize(self, vectors) -> np.ndarray:
        matrix = np.array(vectors, dtype=np.float32)
        if matrix.ndim != 2 or matrix.shape[1] != self.dimension:
            raise ValueError(
                f"Embedding dimension ({matrix.shape[-1] if matrix.ndim else 0}) must match "
                f"index dimension ({self.dimension})"
            )
        faiss.normalize_L2(matrix)
        return matrix

    def add_documents(
        self,
        documents: Sequence[Document],
        embeddings: Sequence[Sequence[float]]
    ) -> List[str]:
        """
        Store documents with their embeddings.

        Args:
            documents: Documents to store
            embeddings: One embedding per document

        Returns:
            Point ids assigned to the stored documents

        Raises:
            ValueError: If counts or dimensions don't match
        """
        if not documents:
            return []

        if len(documents) != len(embeddings):
            raise ValueError(
                f"Embeddings count ({len(embeddings)}) must match "
                f"documents count ({len(documents)})"
            )

        vectors = self._normalize(embeddings)
        point_ids = [str(uuid.uuid4()) for _ in documents]
        entries = [
            {'id': point_id, 'document': document}
            for point_id, document in zip(point_ids, documents)
        ]

        with self._lock:
            self.index.add(vectors)
            self.metadata.extend(entries)

            assert self.index.ntotal == len(self.metadata), \
                "CRITICAL: Metadata out of sync with index"

        logger.info(f"Added {len(point_ids)} articles to '{self.collection_name}'")
        return point_ids

    def search(self, vector: Sequence[float], limit: int = 5) -> List[RetrievedMatch]:
        """
        Find the nearest documents to a query vector.

        Args:
            vector: Query embedding
            limit: Maximum number of matches

        Returns:
            Matches ordered by descending cosine similarity

        Raises:
            ValueError: If limit is negative
            IndexUnavailable: If the index cannot be searched
        """
        if limit < 0:
            raise ValueError(f"limit must be non-negative, got {limit}")

        try:
            query = self._normalize([vector])
        except ValueError as e:
            raise IndexUnavailable(str(e))

        try:
            with self._lock:
                if limit == 0 or self.index.ntotal == 0:
                    return []

                actual_k = min(limit, self.index.ntotal)
                scores, indices = self.index.search(query, actual_k)
                hits = [
                    (float(score), self.metadata[idx])
                    for score, idx in zip(scores[0], indices[0])
                    if 0 <= idx < len(self.metadata)
                ]
        except Exception as e:
            raise IndexUnavailable(f"Error searching '{self.collection_name}': {e}")

        hits.sort(key=lambda hit: hit[0], reverse=True)
        return [
            RetrievedMatch(
                document=item['document'],
                score=score,
                rank=rank
            )
            for rank, (score, item) in enumerate(hits)
        ]

    def save_index(self, path: Optional[str] = None) -> None:
        """
        Save FAISS index and metadata to disk with atomic metadata write.

        Args:
            path: Path to save index (default: self.index_path)
        """
        save_path = path or self.index_path
        if not save_path:
            raise ValueError("No index path configured")

        directory = os.path.dirname(save_path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        metadata_path = save_path + '.metadata'
        temp_metadata_path = metadata_path + '.tmp'

        with self._lock:
            faiss.write_index(self.index, save_path)
            try:
                with open(temp_metadata_path, 'wb') as f:
                    pickle.dump(self.metadata, f, protocol=pickle.HIGHEST_PROTOCOL)

                os.replace(temp_metadata_path, metadata_path)

            except Exception:
                if os.path.exists(temp_metadata_path):
                    os.remove(temp_metadata_path)
                raise

        logger.info(f"Saved {self.count()} vectors to {save_path}")

    def load_index(self, path: Optional[str] = None) -> bool:
        """
        Load FAISS index and metadata from disk.

        Args:
            path: Path to load index from (default: self.index_path)

        Returns:
            True if successful, False otherwise
        """
        load_path = path or self.index_path
        if not load_path or not os.path.exists(load_path):
            return False

        try:
            loaded_index = faiss.read_index(load_path)

            if loaded_index.d != self.dimension:
                raise ValueError(
                    f"Index dimension {loaded_index.d} does not match {self.dimension}"
                )

            metadata_path = load_path + '.metadata'
            if os.path.exists(metadata_path):
                with open(metadata_path, 'rb') as f:
                    loaded_metadata = pickle.load(f)
            else:
                loaded_metadata = []

            if loaded_index.ntotal != len(loaded_metadata):
                raise ValueError(
                    f"Index has {loaded_index.ntotal} vectors but "
                    f"metadata has {len(loaded_metadata)} entries"
                )

        except Exception as e:
            logger.error(f"Failed to load index from {load_path}: {e}")
            with self._lock:
                self._initialize_index()
                self.metadata = []
            return False

        with self._lock:
            self.index = loaded_index
            self.metadata = loaded_metadata
            self.index.hnsw.efSearch = self.efSearch

        logger.info(f"Loaded {self.count()} vectors from {load_path}")
        return True

    def clear(self) -> None:
        """Clear all vectors and metadata, resetting to empty state."""
        with self._lock:
            self._initialize_index()
            self.metadata = []

    def count(self) -> int:
        """Get the total number of vectors in the index."""
        return self.index.ntotal

    def get_stats(self) -> Dict:
        """Get statistics about the vector store."""
        return {
            'collection': self.collection_name,
            'total_vectors': self.index.ntotal,
            'dimension': self.dimension,
            'metric': 'cosine',
            'M': self.M,
            'efSearch': self.index.hnsw.efSearch,
            'index_type': 'IndexHNSWFlat'
        }

    def __repr__(self) -> str:
        return (
            f"VectorStore(collection={self.collection_name!r}, "
            f"vectors={self.count()}, "
            f"dimension={self.dimension})"
        )
