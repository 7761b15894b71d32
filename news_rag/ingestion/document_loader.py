"""
Document Loader

Reads previously scraped news articles from a JSON or JSON Lines file.
"""

import json
import logging
from pathlib import Path
from typing import List

from ..models import Document

logger = logging.getLogger(__name__)


def _parse_records(text: str, suffix: str) -> list:
    if suffix == '.jsonl':
        return [json.loads(line) for line in text.splitlines() if line.strip()]

    data = json.loads(text)
    if isinstance(data, dict):
        # Accept {"articles": [...]} as produced by most scrapers
        data = data.get('articles', [])
    if not isinstance(data, list):
        raise ValueError("Expected a list of articles")
    return data


def load_documents(file_path: str) -> List[Document]:
    """
    Load articles from a file.

    Records without a title or content are skipped.

    Args:
        file_path: Path to a .json (list or {"articles": [...]}) or .jsonl file

    Returns:
        List of documents in file order

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the file is not valid JSON of the expected shape
    """
    path = Path(file_path)
    text = path.read_text(encoding='utf-8')

    try:
        records = _parse_records(text, path.suffix.lower())
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in {file_path}: {e}") from e

    documents = []
    skipped = 0
    for record in records:
        if not isinstance(record, dict):
            skipped += 1
            continue
        document = Document.from_dict(record)
        if not document.title or not document.content:
            skipped += 1
            continue
        documents.append(document)

    if skipped:
        logger.warning(f"Skipped {skipped} incomplete records in {file_path}")
    logger.info(f"Loaded {len(documents)} articles from {file_path}")
    return documents
