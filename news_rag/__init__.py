"""
News RAG Query System

Answers natural-language questions over ingested news articles by
retrieving relevant passages and grounding a generative model on them.
"""

__version__ = "0.1.0"
