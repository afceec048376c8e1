"""
Unit tests for the job model factory.
"""

from datetime import timedelta
from uuid import uuid4

import pytest
from sqlalchemy import BigInteger, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from docqueue.db.models import Base, get_job_model, utcnow


class Article(Base):
    """Payload with an integer key."""

    __tablename__ = "test_models_article"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)


class Comment(Base):
    """Second payload with an integer key."""

    __tablename__ = "test_models_comment"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)


class Revision(Base):
    """Payload with a composite key."""

    __tablename__ = "test_models_revision"

    article_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    number: Mapped[int] = mapped_column(Integer, primary_key=True)
    label: Mapped[str] = mapped_column(String(50))


ArticleJob = get_job_model("test_models_article_queue", Article, Integer)


class TestJobModel:
    """Tests for get_job_model."""

    def test_cached_per_collection(self):
        """Test that the same collection maps to one class."""
        assert get_job_model("test_models_article_queue", Article, Integer) is ArticleJob
        assert get_job_model("test_models_article_queue", Article, Integer()) is ArticleJob

    def test_cached_collection_rejects_other_payload(self):
        """Test that a mapped collection cannot be pointed at another table."""
        with pytest.raises(ValueError, match="references test_models_article"):
            get_job_model("test_models_article_queue", Comment, Integer)

        foreign_key = next(iter(ArticleJob.__table__.c.payload_id.foreign_keys))
        assert foreign_key.column is Article.__table__.c.id

    def test_cached_collection_rejects_other_ref_type(self):
        """Test that a mapped collection keeps its reference column type."""
        with pytest.raises(ValueError, match="as Integer, not BigInteger"):
            get_job_model("test_models_article_queue", Article, BigInteger)

    def test_table_layout(self):
        """Test the columns of a job table."""
        table = ArticleJob.__table__

        assert table.name == "test_models_article_queue"
        assert {
            "id",
            "payload_id",
            "blocked_until",
            "worker_id",
            "worker_hostname",
            "retries",
            "done",
            "error",
            "created_at",
            "updated_at",
        } <= set(table.columns.keys())
        assert isinstance(table.c.payload_id.type, Integer)
        assert not table.c.payload_id.nullable

        foreign_key = next(iter(table.c.payload_id.foreign_keys))
        assert foreign_key.column is Article.__table__.c.id

    def test_composite_key_rejected(self):
        """Test that payloads need a single-column primary key."""
        with pytest.raises(ValueError, match="single-column primary key"):
            get_job_model("test_models_revision_queue", Revision)

    def test_is_exhausted(self):
        """Test the retry ceiling check."""
        job = ArticleJob(payload_id=1, retries=5)

        assert job.is_exhausted(5) is False
        assert job.is_exhausted(4) is True

    def test_is_blocked(self):
        """Test the lease check."""
        now = utcnow()
        job = ArticleJob(id=uuid4(), payload_id=1, blocked_until=now + timedelta(seconds=5))

        assert job.is_blocked(now) is True
        assert job.is_blocked(now + timedelta(seconds=10)) is False
        assert "retries" in repr(job)
