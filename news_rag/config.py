"""
Centralized Configuration Module

Provides a single source of truth for the query core's configuration:
service endpoints, retrieval limits, timeouts and store lifetimes.
Loads settings from environment variables with sensible defaults and validation.
"""

import os
from dataclasses import dataclass, field, asdict
from typing import Dict, Any, Optional
from urllib.parse import urlparse
from dotenv import load_dotenv

# Load environment variables
load_dotenv()


class ConfigValidationError(Exception):
    """Raised when configuration validation fails."""
    pass


@dataclass
class Config:
    """
    Centralized configuration for the News RAG query system.

    All configuration parameters are loaded from environment variables
    with sensible defaults. Validation is performed on initialization.
    """

    # Ollama Settings
    ollama_base_url: str = field(default="http://localhost:11434")
    embedding_model: str = field(default="nomic-embed-text")
    llm_model: str = field(default="llama3.1:latest")
    temperature: float = field(default=0.3)
    max_tokens: int = field(default=1000)

    # Embedding Parameters
    embedding_dimension: int = field(default=768)
    embedding_batch_size: int = field(default=10)
    embedding_batch_delay: float = field(default=1.0)

    # Request timeouts (seconds), enforced by the service clients
    embedding_timeout: int = field(default=10)
    generation_timeout: int = field(default=30)

    # Retrieval Settings
    top_k: int = field(default=5)
    max_grounding_documents: int = field(default=4)

    # Store Lifetimes (seconds)
    cache_ttl: int = field(default=1800)
    cache_max_entries: int = field(default=10000)
    session_ttl: int = field(default=3600)

    # Storage
    index_dir: str = field(default="data/index")
    collection_name: str = field(default="news_articles")
    documents_file: str = field(default="data/articles.json")

    def __post_init__(self):
        """Load configuration from environment and validate."""
        self._load_from_environment()
        self._validate()

    def _load_from_environment(self):
        """Load configuration from environment variables."""
        # Ollama Settings
        self.ollama_base_url = self._get_env_str('OLLAMA_BASE_URL', self.ollama_base_url)
        self.embedding_model = self._get_env_str('EMBEDDING_MODEL', self.embedding_model)
        self.llm_model = self._get_env_str('LLM_MODEL', self.llm_model)
        self.temperature = self._get_env_float('LLM_TEMPERATURE', self.temperature)
        self.max_tokens = self._get_env_int('LLM_MAX_TOKENS', self.max_tokens)

        # Embedding Parameters
        self.embedding_dimension = self._get_env_int('EMBEDDING_DIMENSION', self.embedding_dimension)
        self.embedding_batch_size = self._get_env_int('EMBEDDING_BATCH_SIZE', self.embedding_batch_size)
        self.embedding_batch_delay = self._get_env_float('EMBEDDING_BATCH_DELAY', self.embedding_batch_delay)

        # Timeouts
        self.embedding_timeout = self._get_env_int('EMBEDDING_TIMEOUT', self.embedding_timeout)
        self.generation_timeout = self._get_env_int('GENERATION_TIMEOUT', self.generation_timeout)

        # Retrieval Settings
        self.top_k = self._get_env_int('TOP_K', self.top_k)
        self.max_grounding_documents = self._get_env_int(
            'MAX_GROUNDING_DOCUMENTS', self.max_grounding_documents
        )

        # Store Lifetimes
        self.cache_ttl = self._get_env_int('CACHE_TTL', self.cache_ttl)
        self.cache_max_entries = self._get_env_int('CACHE_MAX_ENTRIES', self.cache_max_entries)
        self.session_ttl = self._get_env_int('SESSION_TTL', self.session_ttl)

        # Storage
        self.index_dir = self._get_env_path('INDEX_DIR', self.index_dir)
        self.collection_name = self._get_env_str('COLLECTION_NAME', self.collection_name)
        self.documents_file = self._get_env_path('DOCUMENTS_FILE', self.documents_file)

    def _get_env_str(self, key: str, default: str) -> str:
        """Get string value from environment."""
        value = os.getenv(key, default)
        if isinstance(value, str):
            value = value.strip()
        return value

    def _get_env_int(self, key: str, default: int) -> int:
        """Get integer value from environment."""
        value = os.getenv(key)
        if value is None:
            return default

        try:
            return int(value)
        except ValueError:
            raise ConfigValidationError(
                f"Invalid integer value for {key}: '{value}'"
            )

    def _get_env_float(self, key: str, default: float) -> float:
        """Get float value from environment."""
        value = os.getenv(key)
        if value is None:
            return default

        try:
            return float(value)
        except ValueError:
            raise ConfigValidationError(
                f"Invalid float value for {key}: '{value}'"
            )

    def _get_env_path(self, key: str, default: str) -> str:
        """Get path value from environment with expansion."""
        value = os.getenv(key, default)
        if isinstance(value, str):
            value = value.strip()
            value = os.path.expanduser(value)
        return value

    def _validate(self):
        """Validate configuration parameters."""
        # Validate non-empty strings
        for field_name in ('embedding_model', 'llm_model', 'collection_name'):
            if not getattr(self, field_name):
                raise ConfigValidationError(f"{field_name} cannot be empty")

        # Validate positive integers
        positive_int_fields = [
            ('max_tokens', self.max_tokens),
            ('embedding_dimension', self.embedding_dimension),
            ('embedding_batch_size', self.embedding_batch_size),
            ('top_k', self.top_k),
            ('max_grounding_documents', self.max_grounding_documents),
            ('cache_ttl', self.cache_ttl),
            ('cache_max_entries', self.cache_max_entries),
            ('session_ttl', self.session_ttl),
        ]

        for field_name, value in positive_int_fields:
            if value <= 0:
                raise ConfigValidationError(
                    f"{field_name} must be positive, got {value}"
                )

        # Upstream rate limits
        if self.embedding_batch_size > 10:
            raise ConfigValidationError(
                f"embedding_batch_size must be at most 10, got {self.embedding_batch_size}"
            )
        if self.embedding_batch_delay < 1.0:
            raise ConfigValidationError(
                f"embedding_batch_delay must be at least 1.0, got {self.embedding_batch_delay}"
            )

        # Validate timeouts (at least 1 second, bounded above)
        timeout_limits = [
            ('embedding_timeout', self.embedding_timeout, 10),
            ('generation_timeout', self.generation_timeout, 30),
        ]
        for field_name, value, upper in timeout_limits:
            if value < 1 or value > upper:
                raise ConfigValidationError(
                    f"{field_name} must be between 1 and {upper}, got {value}"
                )

        if not 0.0 <= self.temperature <= 1.0:
            raise ConfigValidationError(
                f"temperature must be between 0.0 and 1.0, got {self.temperature}"
            )

        if self.max_grounding_documents > self.top_k:
            raise ConfigValidationError(
                "max_grounding_documents must not exceed top_k"
            )

        # Validate URL format
        parsed = urlparse(self.ollama_base_url)
        if not all([parsed.scheme, parsed.netloc]):
            raise ConfigValidationError(
                f"Invalid URL for ollama_base_url: {self.ollama_base_url}"
            )

    @property
    def index_path(self) -> str:
        """Path of the FAISS index file for the configured collection."""
        return os.path.join(self.index_dir, f"{self.collection_name}.index")

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        return asdict(self)

    def __repr__(self) -> str:
        """String representation of configuration."""
        items = []
        for key, value in self.to_dict().items():
            items.append(f"{key}={value!r}")
        return f"Config({', '.join(items)})"

    def update(self, **kwargs):
        """
        Update configuration values with validation.

        Args:
            **kwargs: Configuration parameters to update

        Raises:
            ConfigValidationError: If validation fails
        """
        original_values = {}

        try:
            for key, value in kwargs.items():
                if not hasattr(self, key):
                    raise ConfigValidationError(f"Unknown configuration parameter: {key}")
                original_values[key] = getattr(self, key)
                setattr(self, key, value)

            self._validate()

        except Exception:
            # Rollback on validation failure
            for key, value in original_values.items():
                setattr(self, key, value)
            raise


# Singleton instance
_config_instance: Optional[Config] = None


def get_config() -> Config:
    """
    Get the global configuration instance (singleton pattern).

    Returns:
        Config: Global configuration instance
    """
    global _config_instance
    if _config_instance is None:
        _config_instance = Config()
    return _config_instance


def reset_config():
    """Reset the global configuration instance."""
    global _config_instance
    _config_instance = None
