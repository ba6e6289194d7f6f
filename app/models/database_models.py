"""
SQLAlchemy ORM models for saved mind maps.

Graphs, settings and metadata are stored as opaque JSON documents; the only
structure the database enforces is ownership.
"""
from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    DateTime,
    ForeignKey,
    JSON,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.database import Base


class User(Base):
    """User account (synced from the frontend's auth provider)."""

    __tablename__ = "users"

    id = Column(String(255), primary_key=True)
    email = Column(String(255), nullable=False, unique=True, index=True)
    name = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    # Relationships
    mindmaps = relationship("MindMap", back_populates="user", cascade="all, delete-orphan")


class MindMap(Base):
    """A generated mind map saved by a user."""

    __tablename__ = "mindmaps"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(255), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    generation_id = Column(String(64), nullable=True)  # MindMapData.id from the pipeline
    title = Column(String(255), nullable=False)
    prompt = Column(Text, nullable=False)
    nodes = Column(JSON, nullable=False)
    edges = Column(JSON, nullable=False)
    settings = Column(JSON, nullable=True)
    metadata_json = Column(JSON, nullable=True)  # complexity, takeaways, generationTime, ...
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    # Relationships
    user = relationship("User", back_populates="mindmaps")
