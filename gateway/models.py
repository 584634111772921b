from __future__ import annotations

# SQLAlchemy models for the records the handler groups keep.
# - String UUID primary keys for cross-DB portability.
# - JSON columns hold AI output verbatim; the API shapes it at the edge.

import uuid

from sqlalchemy import JSON, Column, DateTime, Enum, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .config import db

MessageRole = Enum("user", "assistant", name="message_role")


def _uuid() -> str:
    """Generate a RFC4122 string UUID."""
    return str(uuid.uuid4())


class StudyPlan(db.Model):
    __tablename__ = "study_plans"

    id = Column(String(36), primary_key=True, default=_uuid)
    topic = Column(String(200), nullable=False)
    level = Column(String(32), nullable=False)
    duration_weeks = Column(Integer, nullable=False)
    plan = Column(JSON, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "topic": self.topic,
            "level": self.level,
            "durationWeeks": self.duration_weeks,
            "plan": self.plan,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }


class ResourceCollection(db.Model):
    __tablename__ = "resource_collections"

    id = Column(String(36), primary_key=True, default=_uuid)
    topic = Column(String(200), nullable=False)
    resources = Column(JSON, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class PdfDocument(db.Model):
    __tablename__ = "pdf_documents"

    id = Column(String(36), primary_key=True, default=_uuid)
    filename = Column(String(255), nullable=False)
    stored_path = Column(String(1024), nullable=False)
    page_count = Column(Integer, nullable=False, default=0)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    messages = relationship(
        "ChatMessage",
        back_populates="document",
        cascade="all, delete-orphan",
        order_by="ChatMessage.created_at",
    )


class ChatMessage(db.Model):
    __tablename__ = "chat_messages"

    id = Column(String(36), primary_key=True, default=_uuid)
    document_id = Column(
        String(36), ForeignKey("pdf_documents.id", ondelete="CASCADE"), nullable=False, index=True
    )
    role = Column(MessageRole, nullable=False)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    document = relationship("PdfDocument", back_populates="messages")
