"""
Ollama Generation Service

Produces grounded answers with a chat model served by Ollama.
"""

import logging
from typing import Sequence

from langchain_ollama import ChatOllama

from ..errors import GenerationServiceError
from ..models import RetrievedMatch
from .prompts import build_grounding_prompt

logger = logging.getLogger(__name__)

MAX_GROUNDING_DOCUMENTS = 4


class OllamaGenerationService:
    """Answers a question from at most four grounding documents."""

    def __init__(
        self,
        llm_model: str = "llama3.1:latest",
        temperature: float = 0.3,
        max_tokens: int = 1000,
        ollama_base_url: str = "http://localhost:11434",
        timeout: float = 30
    ):
        """
        Initialize the generation service.

        Args:
            llm_model: Ollama model name for answer generation
            temperature: LLM temperature (0.0-1.0, higher = more creative)
            max_tokens: Maximum tokens in generated answer
            ollama_base_url: Base URL for Ollama service
            timeout: HTTP timeout for a generation call, in seconds
        """
        self.llm_model = llm_model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout = timeout

        self.llm = ChatOllama(
            model=llm_model,
            temperature=temperature,
            base_url=ollama_base_url,
            num_predict=max_tokens,
            client_kwargs={'timeout': timeout}
        )

    def generate(self, question: str, grounding_documents: Sequence[RetrievedMatch]) -> str:
        """
        Generate an answer grounded in the supplied documents.

        Args:
            question: User's question
            grounding_documents: Deduplicated matches, at most four

        Returns:
            Generated answer text

        Raises:
            ValueError: If more than four documents are supplied
            GenerationServiceError: If the model call fails
        """
        if len(grounding_documents) > MAX_GROUNDING_DOCUMENTS:
            raise ValueError(
                f"At most {MAX_GROUNDING_DOCUMENTS} grounding documents allowed, "
                f"got {len(grounding_documents)}"
            )

        prompt = build_grounding_prompt(question, grounding_documents)

        try:
            response = self.llm.invoke(prompt)
        except Exception as e:
            raise GenerationServiceError(f"Error generating answer with LLM: {e}") from e

        if hasattr(response, 'content'):
            return response.content
        return str(response)
