"""
Tests for loading scraped articles from disk.
"""

import json

import pytest

from news_rag.ingestion.document_loader import load_documents
from news_rag.models import Document


ARTICLES = [
    {
        'title': "Storm hits coast",
        'content': "A storm made landfall overnight.",
        'url': "https://news.example.com/storm",
        'publishedAt': "2024-05-01T09:00:00Z",
        'source': "Weather Desk"
    },
    {
        'title': "Election results announced",
        'content': "Official results were published.",
        'url': "https://news.example.com/election",
        'publishedAt': None,
        'source': "Politics"
    },
]


class TestLoadDocuments:

    def test_json_list(self, tmp_path):
        path = tmp_path / "articles.json"
        path.write_text(json.dumps(ARTICLES))

        documents = load_documents(str(path))

        assert len(documents) == 2
        assert documents[0] == Document(
            title="Storm hits coast",
            content="A storm made landfall overnight.",
            url="https://news.example.com/storm",
            published_at="2024-05-01T09:00:00Z",
            source="Weather Desk"
        )

    def test_articles_wrapper(self, tmp_path):
        path = tmp_path / "articles.json"
        path.write_text(json.dumps({'articles': ARTICLES}))

        assert [d.title for d in load_documents(str(path))] == [a['title'] for a in ARTICLES]

    def test_json_lines(self, tmp_path):
        path = tmp_path / "articles.jsonl"
        path.write_text("\n".join(json.dumps(a) for a in ARTICLES) + "\n\n")

        assert len(load_documents(str(path))) == 2

    def test_incomplete_records_skipped(self, tmp_path):
        path = tmp_path / "articles.json"
        path.write_text(json.dumps(ARTICLES + [{'title': "No content"}, {'content': "No title"}, "junk"]))

        assert len(load_documents(str(path))) == 2

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "articles.json"
        path.write_text("{not json")

        with pytest.raises(ValueError, match="Invalid JSON"):
            load_documents(str(path))

    def test_wrong_shape(self, tmp_path):
        path = tmp_path / "articles.json"
        path.write_text(json.dumps("just a string"))

        with pytest.raises(ValueError):
            load_documents(str(path))

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_documents(str(tmp_path / "missing.json"))
