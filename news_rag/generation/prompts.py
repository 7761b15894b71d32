"""
Grounding prompt construction.
"""

from typing import Sequence

from ..models import RetrievedMatch

REFUSAL_MESSAGE = "I cannot find an answer in the provided articles."

SYSTEM_INSTRUCTIONS = (
    "You are a professional news assistant.\n"
    "Based ONLY on the following news articles, provide a clear and concise "
    "answer to the user's question.\n"
    "Use complete sentences. Do not use knowledge outside the provided articles.\n"
    f'If the articles do not contain enough information, answer exactly: "{REFUSAL_MESSAGE}"'
)


def format_grounding(matches: Sequence[RetrievedMatch]) -> str:
    """Render each match's title, content and source as a numbered article block."""
    parts = []
    for i, match in enumerate(matches, 1):
        document = match.document
        parts.append(
            f"Article {i}:\n"
            f"Title: {document.title}\n"
            f"Content: {document.content}\n"
            f"Source: {document.source}"
        )
    return "\n\n".join(parts)


def build_grounding_prompt(question: str, matches: Sequence[RetrievedMatch]) -> str:
    """
    Build the complete prompt for the generator.

    Args:
        question: User's question
        matches: Grounding documents, in rank order

    Returns:
        Prompt string
    """
    articles = format_grounding(matches) or "No relevant articles found."

    return f"""{SYSTEM_INSTRUCTIONS}

Articles:
{articles}

Question:
{question}

Answer:"""
