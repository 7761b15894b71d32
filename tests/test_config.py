"""
Tests for the Configuration Module

Tests cover:
- Default values
- Loading from environment variables
- Validation
- Configuration updates with rollback
"""

import os
from unittest.mock import patch

import pytest

from news_rag.config import Config, ConfigValidationError, get_config, reset_config


class TestConfigurationDefaults:
    """Test default configuration values."""

    def test_default_ollama_settings(self):
        config = Config()

        assert config.ollama_base_url == "http://localhost:11434"
        assert config.embedding_model == "nomic-embed-text"
        assert config.llm_model == "llama3.1:latest"

    def test_default_retrieval_settings(self):
        config = Config()

        assert config.top_k == 5
        assert config.max_grounding_documents == 4
        assert config.embedding_dimension == 768
        assert config.embedding_batch_size == 10
        assert config.embedding_batch_delay == 1.0

    def test_default_lifetimes(self):
        config = Config()

        assert config.cache_ttl == 1800
        assert config.session_ttl == 3600

    def test_default_timeouts(self):
        config = Config()

        assert config.embedding_timeout == 10
        assert config.generation_timeout == 30

    def test_index_path(self):
        config = Config()
        assert config.index_path == os.path.join("data/index", "news_articles.index")


class TestConfigurationFromEnvironment:
    """Test configuration loading from environment variables."""

    def test_load_ollama_from_env(self):
        with patch.dict(os.environ, {
            'OLLAMA_BASE_URL': 'http://custom:8080',
            'EMBEDDING_MODEL': 'custom-embed',
            'LLM_MODEL': 'custom-llm'
        }):
            config = Config()

            assert config.ollama_base_url == "http://custom:8080"
            assert config.embedding_model == "custom-embed"
            assert config.llm_model == "custom-llm"

    def test_load_lifetimes_from_env(self):
        with patch.dict(os.environ, {'CACHE_TTL': '60', 'SESSION_TTL': '120'}):
            config = Config()

            assert config.cache_ttl == 60
            assert config.session_ttl == 120

    def test_path_expansion(self):
        with patch.dict(os.environ, {'INDEX_DIR': '~/news-index'}):
            config = Config()
            assert config.index_dir == os.path.expanduser('~/news-index')

    def test_invalid_integer(self):
        with patch.dict(os.environ, {'TOP_K': 'five'}):
            with pytest.raises(ConfigValidationError, match="Invalid integer value for TOP_K"):
                Config()


class TestConfigurationValidation:
    """Test configuration validation."""

    def test_validate_positive_integers(self):
        with patch.dict(os.environ, {'CACHE_MAX_ENTRIES': '0'}):
            with pytest.raises(ConfigValidationError, match="cache_max_entries must be positive"):
                Config()

    def test_batch_size_upper_bound(self):
        with patch.dict(os.environ, {'EMBEDDING_BATCH_SIZE': '20'}):
            with pytest.raises(ConfigValidationError, match="at most 10"):
                Config()

    def test_batch_delay_floor(self):
        with patch.dict(os.environ, {'EMBEDDING_BATCH_DELAY': '0.2'}):
            with pytest.raises(ConfigValidationError, match="at least 1.0"):
                Config()

    @pytest.mark.parametrize("key, value", [
        ('EMBEDDING_TIMEOUT', '0'),
        ('GENERATION_TIMEOUT', '31'),
    ])
    def test_timeout_bounds(self, key, value):
        with patch.dict(os.environ, {key: value}):
            with pytest.raises(ConfigValidationError, match="timeout must be between"):
                Config()

    def test_grounding_not_above_top_k(self):
        with patch.dict(os.environ, {'TOP_K': '3'}):
            with pytest.raises(ConfigValidationError, match="max_grounding_documents"):
                Config()

    def test_validate_url_format(self):
        with patch.dict(os.environ, {'OLLAMA_BASE_URL': 'not-a-url'}):
            with pytest.raises(ConfigValidationError, match="Invalid URL"):
                Config()


class TestConfigurationMethods:

    def test_update_valid(self):
        config = Config()
        config.update(top_k=8, cache_ttl=10)

        assert config.top_k == 8
        assert config.cache_ttl == 10

    def test_update_rolls_back_on_failure(self):
        config = Config()

        with pytest.raises(ConfigValidationError):
            config.update(top_k=8, session_ttl=-1)

        assert config.top_k == 5
        assert config.session_ttl == 3600

    def test_update_unknown_key(self):
        with pytest.raises(ConfigValidationError, match="Unknown configuration parameter"):
            Config().update(chunk_size=100)

    def test_to_dict(self):
        config_dict = Config().to_dict()
        assert config_dict['collection_name'] == "news_articles"

    def test_singleton(self):
        reset_config()
        try:
            assert get_config() is get_config()
        finally:
            reset_config()
