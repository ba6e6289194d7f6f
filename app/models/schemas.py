"""
Pydantic schemas for generation settings, outlines, graphs, and API payloads.

Wire names are camelCase (the Next.js / React Flow frontend consumes them
directly); Python attributes are snake_case.  Every model accepts both.
"""
from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from app.config import settings as app_settings
from app.utils.helpers import clamp_int, clamp_number


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class DetailLevel(str, Enum):
    """How much detail the outline should contain."""

    NORMAL = "normal"
    DETAILED = "detailed"
    EXTREME = "extreme"


class TopicDepth(str, Enum):
    """Trade-off between many shallow topics and few deep ones."""

    BALANCED = "balanced"
    DEEP = "deep"
    BROAD = "broad"


class WritingStyle(str, Enum):
    """Register of the generated text."""

    ACADEMIC = "academic"
    PROFESSIONAL = "professional"
    CREATIVE = "creative"


class Importance(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class Complexity(str, Enum):
    BASIC = "basic"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


class RelationStrength(str, Enum):
    STRONG = "strong"
    MODERATE = "moderate"
    WEAK = "weak"


class TierName(str, Enum):
    """The five levels of a mind map, root first."""

    ROOT = "root"
    TOPIC = "topic"
    SUBTOPIC = "subtopic"
    POINT = "point"
    SUBPOINT = "subpoint"

    @property
    def level(self) -> int:
        return _TIER_LEVELS[self]


_TIER_LEVELS = {
    TierName.ROOT: 0,
    TierName.TOPIC: 1,
    TierName.SUBTOPIC: 2,
    TierName.POINT: 3,
    TierName.SUBPOINT: 4,
}


class EdgeKind(str, Enum):
    HIERARCHY = "hierarchy"
    CROSS_REFERENCE = "cross-reference"


# ---------------------------------------------------------------------------
# Generation settings
# ---------------------------------------------------------------------------

COUNT_MIN = 1
COUNT_MAX = 100

_TRUE_STRINGS = frozenset({"true", "1", "yes", "on"})


def _coerce_enum(value: Any, enum_cls: type, default: Enum) -> Enum:
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).strip().lower())
    except ValueError:
        return default


def _coerce_flag(value: Any, default: bool = False) -> bool:
    if value is None:
        return default
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_STRINGS
    return bool(value)


class GenerationSettings(BaseModel):
    """
    Options controlling a single generation call.

    Construction always coerces: unknown enum values fall back to defaults,
    numeric bounds are clamped (counts to [1, 100], ``temperature`` to [0, 1],
    ``maxTokens`` to [1, MAX_TOKENS_LIMIT]).  Instances are immutable, so
    anything holding one can rely on the values being in range.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    detail_level: DetailLevel = Field(DetailLevel.NORMAL, alias="detailLevel")
    topic_depth: TopicDepth = Field(TopicDepth.BALANCED, alias="topicDepth")
    style: WritingStyle = WritingStyle.PROFESSIONAL
    max_tokens: int = Field(2500, alias="maxTokens")
    max_topics: int = Field(5, alias="maxTopics")
    max_subtopics: int = Field(4, alias="maxSubtopics")
    max_points: int = Field(3, alias="maxPoints")
    max_subpoints: int = Field(2, alias="maxSubpoints")
    temperature: float = 0.7
    include_examples: bool = Field(False, alias="includeExamples")
    include_citations: bool = Field(False, alias="includeCitations")
    include_definitions: bool = Field(False, alias="includeDefinitions")
    cross_topic_relations: bool = Field(False, alias="crossTopicRelations")
    multiple_ai_calls: bool = Field(False, alias="multipleAICalls")
    language: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def _clamp(cls, data: Any) -> Any:
        if isinstance(data, GenerationSettings):
            return data
        if not isinstance(data, Mapping):
            data = {}

        raw: Dict[str, Any] = {}
        for name, field in cls.model_fields.items():
            alias = field.alias or name
            if alias in data:
                raw[name] = data[alias]
            elif name in data:
                raw[name] = data[name]

        def default(name: str) -> Any:
            return cls.model_fields[name].default

        coerced: Dict[str, Any] = {
            "detail_level": _coerce_enum(
                raw.get("detail_level"), DetailLevel, default("detail_level")
            ),
            "topic_depth": _coerce_enum(
                raw.get("topic_depth"), TopicDepth, default("topic_depth")
            ),
            "style": _coerce_enum(raw.get("style"), WritingStyle, default("style")),
            "max_tokens": clamp_int(
                raw.get("max_tokens"), COUNT_MIN, app_settings.MAX_TOKENS_LIMIT,
                default("max_tokens"),
            ),
            "temperature": clamp_number(
                raw.get("temperature"), 0.0, 1.0, default("temperature")
            ),
        }
        for name in ("max_topics", "max_subtopics", "max_points", "max_subpoints"):
            coerced[name] = clamp_int(raw.get(name), COUNT_MIN, COUNT_MAX, default(name))
        for name in (
            "include_examples",
            "include_citations",
            "include_definitions",
            "cross_topic_relations",
            "multiple_ai_calls",
        ):
            coerced[name] = _coerce_flag(raw.get(name), default(name))

        language = str(raw.get("language") or "").strip()
        coerced["language"] = language or None
        return coerced


DEFAULT_SETTINGS = GenerationSettings()


def clamp_settings(raw: Any = None) -> GenerationSettings:
    """Total, pure coercion of any settings-like value into GenerationSettings."""
    return GenerationSettings.model_validate(raw if raw is not None else {})


def merge_settings(overrides: Any = None) -> GenerationSettings:
    """Lay caller overrides over DEFAULT_SETTINGS, then clamp the result."""
    if isinstance(overrides, GenerationSettings):
        return overrides
    merged: Dict[str, Any] = DEFAULT_SETTINGS.model_dump(by_alias=True)
    if isinstance(overrides, Mapping):
        for key, value in overrides.items():
            field = GenerationSettings.model_fields.get(key)
            merged[field.alias if field and field.alias else key] = value
    return clamp_settings(merged)


# ---------------------------------------------------------------------------
# Outline (the model's structured answer)
# ---------------------------------------------------------------------------

class _OutlineModel(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)


class CrossReference(_OutlineModel):
    """A declared relationship from one topic to another, by title."""

    target_topic: str = Field(..., alias="targetTopic")
    relationship: str = ""
    strength: RelationStrength = RelationStrength.MODERATE


class Point(_OutlineModel):
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    keywords: List[str] = Field(default_factory=list)
    examples: List[str] = Field(default_factory=list)
    citations: List[str] = Field(default_factory=list)
    complexity: Optional[Complexity] = None
    subpoints: List[str] = Field(default_factory=list)


class Subtopic(_OutlineModel):
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    keywords: List[str] = Field(default_factory=list)
    importance: Optional[Importance] = None
    points: List[Point]


class Topic(_OutlineModel):
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    keywords: List[str] = Field(default_factory=list)
    subtopics: List[Subtopic]
    cross_references: List[CrossReference] = Field(
        default_factory=list, alias="crossReferences"
    )


class OutlineMetadata(_OutlineModel):
    complexity: Complexity = Complexity.INTERMEDIATE
    estimated_reading_time: float = Field(0, alias="estimatedReadingTime")
    key_takeaways: List[str] = Field(default_factory=list, alias="keyTakeaways")
    suggested_readings: List[str] = Field(default_factory=list, alias="suggestedReadings")


DEFAULT_OUTLINE_METADATA = OutlineMetadata()


class Outline(_OutlineModel):
    """Validated Topic → Subtopic → Point → subpoint tree."""

    topics: List[Topic]
    metadata: Optional[OutlineMetadata] = None


# ---------------------------------------------------------------------------
# Graph (React Flow shape)
# ---------------------------------------------------------------------------

class _GraphModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class Position(_GraphModel):
    x: float = 0.0
    y: float = 0.0


class NodeStyle(_GraphModel):
    background_color: str = Field(..., alias="backgroundColor")
    border_color: str = Field(..., alias="borderColor")
    font_size: int = Field(..., alias="fontSize")


class NodeDetails(_GraphModel):
    keywords: List[str] = Field(default_factory=list)
    examples: List[str] = Field(default_factory=list)
    citations: List[str] = Field(default_factory=list)
    importance: Optional[Importance] = None
    complexity: Optional[Complexity] = None


class NodeData(_GraphModel):
    label: str
    description: Optional[str] = None
    level: int = 0
    details: Optional[NodeDetails] = None


class MindMapNode(_GraphModel):
    """A single positioned node.  ``id`` follows the tier id scheme."""

    id: str
    type: TierName
    data: NodeData
    position: Position = Field(default_factory=Position)
    style: NodeStyle


class EdgeStyle(_GraphModel):
    stroke: str
    stroke_width: Optional[float] = Field(None, alias="strokeWidth")
    stroke_dasharray: Optional[str] = Field(None, alias="strokeDasharray")
    opacity: Optional[float] = None


class EdgeData(_GraphModel):
    relationship: str
    strength: RelationStrength


class MindMapEdge(_GraphModel):
    id: str
    source: str
    target: str
    kind: EdgeKind = EdgeKind.HIERARCHY
    type: str = "default"
    animated: bool = False
    label: Optional[str] = None
    style: EdgeStyle
    data: Optional[EdgeData] = None


class MindMapGraph(_GraphModel):
    nodes: List[MindMapNode] = Field(default_factory=list)
    edges: List[MindMapEdge] = Field(default_factory=list)

    def node_ids(self) -> List[str]:
        return [n.id for n in self.nodes]

    def edge_ids(self) -> List[str]:
        return [e.id for e in self.edges]


class MindMapMetadata(_GraphModel):
    """Outline metadata plus generation bookkeeping."""

    complexity: Complexity = Complexity.INTERMEDIATE
    estimated_reading_time: float = Field(0, alias="estimatedReadingTime")
    key_takeaways: List[str] = Field(default_factory=list, alias="keyTakeaways")
    suggested_readings: List[str] = Field(default_factory=list, alias="suggestedReadings")
    version: str = "2.0"
    generation_time: float = Field(0.0, alias="generationTime")  # milliseconds


class MindMapData(_GraphModel):
    """Everything the frontend needs to render (and later save) one mind map."""

    id: str
    title: str
    prompt: str
    nodes: List[MindMapNode]
    edges: List[MindMapEdge]
    settings: GenerationSettings
    metadata: MindMapMetadata


# ---------------------------------------------------------------------------
# Persistence / API schemas
# ---------------------------------------------------------------------------

class MindMapSaveRequest(BaseModel):
    """Body for POST /api/mindmaps — a generated map plus an optional title."""

    title: Optional[str] = Field(None, max_length=255)
    mindmap: MindMapData


class MindMapSummary(BaseModel):
    """List entry for a stored mind map."""

    id: int
    title: str
    prompt: str
    node_count: int = 0
    edge_count: int = 0
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class MindMapRecordResponse(BaseModel):
    """A stored mind map with its graph and metadata."""

    id: int
    title: str
    prompt: str
    nodes: List[Dict[str, Any]]
    edges: List[Dict[str, Any]]
    settings: Dict[str, Any] = Field(default_factory=dict)
    metadata: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime
    updated_at: datetime


class HealthCheckResponse(BaseModel):
    """Schema for health check response."""

    status: str
    database: str
    llm: str
    timestamp: datetime
