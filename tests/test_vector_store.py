"""
Test Suite for the FAISS HNSW Vector Store

Uses real FAISS indexes on small random data.
"""

import os
import tempfile

import numpy as np
import pytest

from news_rag.errors import IndexUnavailable
from news_rag.models import RetrievedMatch
from news_rag.storage.vector_store import VectorStore

from conftest import make_document

DIM = 768


def random_vectors(n, seed=0):
    rng = np.random.default_rng(seed)
    return rng.standard_normal((n, DIM)).astype(np.float32)


@pytest.fixture
def store():
    return VectorStore(dimension=DIM)


@pytest.fixture
def populated(store):
    documents = [make_document(f"Article {i}") for i in range(20)]
    vectors = random_vectors(20)
    store.add_documents(documents, vectors)
    return store, documents, vectors


class TestVectorStoreInitialization:

    def test_uses_hnsw_inner_product(self, store):
        assert 'HNSW' in type(store.index).__name__
        assert store.index.metric_type == 0  # faiss.METRIC_INNER_PRODUCT

    def test_defaults(self, store):
        assert store.dimension == 768
        assert store.collection_name == "news_articles"
        assert store.count() == 0


class TestAddDocuments:

    def test_add_and_count(self, populated):
        store, _, _ = populated
        assert store.count() == 20
        assert len(store.metadata) == 20

    def test_documents_stored_as_is(self, populated):
        store, documents, _ = populated
        assert store.metadata[0]['document'] is documents[0]
        assert set(store.metadata[0]) == {'id', 'document'}

    def test_search_returns_stored_documents(self, populated):
        store, documents, vectors = populated

        matches = store.search(vectors[3], limit=3)

        assert matches[0].document is documents[3]
        assert all(
            any(match.document is document for document in documents)
            for match in matches
        )

    def test_fresh_ids_accumulate_on_reingestion(self, populated):
        store, documents, vectors = populated

        store.add_documents(documents, vectors)

        ids = [item['id'] for item in store.metadata]
        assert store.count() == 40
        assert len(set(ids)) == 40

    def test_count_mismatch(self, store):
        with pytest.raises(ValueError, match="must match"):
            store.add_documents([make_document("A")], random_vectors(2))

    def test_dimension_mismatch(self, store):
        with pytest.raises(ValueError):
            store.add_documents([make_document("A")], [[0.1] * 384])

    def test_empty(self, store):
        assert store.add_documents([], []) == []


class TestSearch:

    def test_nearest_is_self_with_cosine_one(self, populated):
        store, documents, vectors = populated

        results = store.search(vectors[7], limit=5)

        assert isinstance(results[0], RetrievedMatch)
        assert results[0].document == documents[7]
        assert results[0].score == pytest.approx(1.0, abs=1e-4)

    def test_scores_descending_and_ranked(self, populated):
        store, _, vectors = populated

        results = store.search(vectors[3], limit=5)

        scores = [r.score for r in results]
        assert scores == sorted(scores, reverse=True)
        assert [r.rank for r in results] == list(range(len(results)))
        assert all(-1.0001 <= s <= 1.0001 for s in scores)

    def test_scale_invariant(self, populated):
        store, documents, vectors = populated

        results = store.search(vectors[2] * 10, limit=1)

        assert results[0].document == documents[2]

    def test_limit_larger_than_index(self, populated):
        store, _, vectors = populated
        assert len(store.search(vectors[0], limit=100)) == 20

    def test_empty_index(self, store):
        assert store.search(random_vectors(1)[0], limit=5) == []

    def test_zero_limit(self, populated):
        store, _, vectors = populated
        assert store.search(vectors[0], limit=0) == []

    def test_negative_limit(self, store):
        with pytest.raises(ValueError):
            store.search(random_vectors(1)[0], limit=-1)

    def test_wrong_dimension_is_unavailable(self, populated):
        store, _, _ = populated
        with pytest.raises(IndexUnavailable):
            store.search([0.1] * 10, limit=5)


class TestPersistence:

    def test_save_and_load(self, populated):
        store, documents, vectors = populated

        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir, "news_articles.index")
            store.save_index(path)

            assert os.path.exists(path + '.metadata')
            assert not os.path.exists(path + '.metadata.tmp')

            loaded = VectorStore(index_path=path, dimension=DIM)

            assert loaded.count() == 20
            assert loaded.search(vectors[5], limit=1)[0].document == documents[5]

    def test_load_missing_file(self, store):
        assert store.load_index("/nonexistent/path.index") is False

    def test_load_out_of_sync_metadata(self, populated):
        store, _, _ = populated

        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir, "news_articles.index")
            store.save_index(path)
            os.remove(path + '.metadata')

            fresh = VectorStore(dimension=DIM)
            assert fresh.load_index(path) is False
            assert fresh.count() == 0

    def test_clear(self, populated):
        store, _, _ = populated
        store.clear()
        assert store.count() == 0
        assert store.metadata == []

    def test_stats(self, populated):
        store, _, _ = populated
        stats = store.get_stats()
        assert stats['total_vectors'] == 20
        assert stats['metric'] == 'cosine'
