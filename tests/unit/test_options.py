"""
Unit tests for queue options and configuration.
"""

from datetime import timedelta

import pydantic
import pytest
from sqlalchemy import Integer, Uuid

from docqueue.config import Settings
from docqueue.types.job import QueueOptions


class TestQueueOptions:
    """Tests for QueueOptions."""

    def test_defaults(self):
        """Test the documented defaults."""
        options = QueueOptions()

        assert options.payload_ref_type is Uuid
        assert options.queue_collection == "queue"
        assert options.block_duration == 30000
        assert options.max_retries == 5
        assert options.lease == timedelta(seconds=30)

    def test_partial_override(self):
        """Test that unspecified fields keep their defaults."""
        options = QueueOptions(max_retries=1, payload_ref_type=Integer)

        assert options.max_retries == 1
        assert options.payload_ref_type is Integer
        assert options.block_duration == 30000

    @pytest.mark.parametrize(
        "values",
        [
            {"max_retries": -1},
            {"block_duration": -5},
            {"queue_collection": ""},
        ],
    )
    def test_rejects_invalid_values(self, values):
        """Test validation of option values."""
        with pytest.raises(pydantic.ValidationError):
            QueueOptions(**values)

    def test_frozen(self):
        """Test that options cannot change after construction."""
        options = QueueOptions()
        with pytest.raises(pydantic.ValidationError):
            options.max_retries = 10

    def test_from_settings(self):
        """Test building options from environment configuration."""
        settings = Settings(
            queue_collection="documents_queue",
            queue_block_duration_ms=1000,
            queue_max_retries=2,
        )

        options = QueueOptions.from_settings(settings, max_retries=7)

        assert options.queue_collection == "documents_queue"
        assert options.block_duration == 1000
        assert options.max_retries == 7

    def test_settings_from_environment(self, monkeypatch):
        """Test that settings read environment variables."""
        monkeypatch.setenv("QUEUE_MAX_RETRIES", "9")
        monkeypatch.setenv("LOG_FORMAT", "console")

        settings = Settings()

        assert settings.queue_max_retries == 9
        assert settings.log_format == "console"
