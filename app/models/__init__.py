"""Database and schema models for the mind map backend."""
from app.models.database_models import (
    User,
    MindMap,
)
from app.models.schemas import (
    GenerationSettings,
    Outline,
    MindMapGraph,
    MindMapData,
    MindMapSaveRequest,
    MindMapSummary,
    MindMapRecordResponse,
    HealthCheckResponse,
)

__all__ = [
    # Database models
    "User",
    "MindMap",
    # Pydantic schemas
    "GenerationSettings",
    "Outline",
    "MindMapGraph",
    "MindMapData",
    "MindMapSaveRequest",
    "MindMapSummary",
    "MindMapRecordResponse",
    "HealthCheckResponse",
]
