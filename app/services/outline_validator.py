"""
Outline schema validation.

``parse_outline`` turns the raw JSON value returned by the LLM into a typed
``Outline`` or raises the first schema violation it meets.  It is a gate, not
a collector: only the first bad topic/subtopic/point is reported, with the
indices needed to locate it.

Required structure (anything else is lenient and normalised)::

    {"topics": [                                   # list
        {"title": "...",                           # non-empty string
         "subtopics": [                            # list
             {"title": "...",                      # non-empty string
              "points": [                          # list
                  {"title": "..."}]}]}]}           # non-empty string
"""
from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, List, Optional

from app.models.schemas import (
    Complexity,
    CrossReference,
    Importance,
    Outline,
    OutlineMetadata,
    Point,
    RelationStrength,
    Subtopic,
    Topic,
)
from app.services.errors import (
    InvalidPoint,
    InvalidResponse,
    InvalidSubtopic,
    InvalidTopic,
)
from app.utils.helpers import clamp_number, string_list

logger = logging.getLogger(__name__)


def parse_outline(raw: Any) -> Outline:
    """
    Validate *raw* and convert it into an ``Outline``.

    Raises:
        InvalidResponse: *raw* is not an object or ``topics`` is not a list.
        InvalidTopic:    topic *i* lacks a title or a ``subtopics`` list.
        InvalidSubtopic: subtopic *(i, j)* lacks a title or a ``points`` list.
        InvalidPoint:    point *(i, j, k)* lacks a title.
    """
    if not isinstance(raw, Mapping) or not isinstance(raw.get("topics"), list):
        raise InvalidResponse(raw)

    topics: List[Topic] = []
    for i, raw_topic in enumerate(raw["topics"]):
        title = _title(raw_topic)
        if title is None or not isinstance(raw_topic.get("subtopics"), list):
            raise InvalidTopic(i, raw_topic)

        subtopics: List[Subtopic] = []
        for j, raw_sub in enumerate(raw_topic["subtopics"]):
            sub_title = _title(raw_sub)
            if sub_title is None or not isinstance(raw_sub.get("points"), list):
                raise InvalidSubtopic(i, j, raw_sub)

            points: List[Point] = []
            for k, raw_point in enumerate(raw_sub["points"]):
                point_title = _title(raw_point)
                if point_title is None:
                    raise InvalidPoint(i, j, k, raw_point)
                points.append(_point(point_title, raw_point))

            subtopics.append(
                Subtopic(
                    title=sub_title,
                    description=_text(raw_sub.get("description")),
                    keywords=string_list(raw_sub.get("keywords")),
                    importance=_enum(raw_sub.get("importance"), Importance),
                    points=points,
                )
            )

        topics.append(
            Topic(
                title=title,
                description=_text(raw_topic.get("description")),
                keywords=string_list(raw_topic.get("keywords")),
                subtopics=subtopics,
                cross_references=_cross_references(raw_topic.get("crossReferences")),
            )
        )

    outline = Outline(topics=topics, metadata=_metadata(raw.get("metadata")))
    logger.debug("parse_outline: %d topics validated", len(topics))
    return outline


validate_outline = parse_outline


# ---------------------------------------------------------------------------
# Field helpers
# ---------------------------------------------------------------------------

def _title(node: Any) -> Optional[str]:
    """Return the title of *node*, or None when it is missing or blank.

    The title is returned verbatim: cross-references match on it exactly.
    """
    if not isinstance(node, Mapping):
        return None
    title = node.get("title")
    if not isinstance(title, str) or not title.strip():
        return None
    return title


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = value if isinstance(value, str) else str(value)
    return text.strip() or None


def _enum(value: Any, enum_cls: type, default: Any = None) -> Any:
    if value is None:
        return default
    try:
        return enum_cls(str(value).strip().lower())
    except ValueError:
        return default


def _point(title: str, raw: Mapping) -> Point:
    return Point(
        title=title,
        description=_text(raw.get("description")),
        keywords=string_list(raw.get("keywords")),
        examples=string_list(raw.get("examples")),
        citations=string_list(raw.get("citations")),
        complexity=_enum(raw.get("complexity"), Complexity),
        subpoints=_subpoints(raw.get("subpoints")),
    )


def _subpoints(value: Any) -> List[str]:
    """Subpoints as strings, one per source item.

    Nothing is dropped: a subpoint's id is its position in the source list.
    """
    if not isinstance(value, (list, tuple)):
        return []
    return ["" if item is None else str(item).strip() for item in value]


def _cross_references(value: Any) -> List[CrossReference]:
    """Keep well-formed references; ones without a target title are dropped."""
    if not isinstance(value, list):
        return []
    refs: List[CrossReference] = []
    for item in value:
        if not isinstance(item, Mapping):
            continue
        target = item.get("targetTopic")
        if not isinstance(target, str) or not target:
            continue
        refs.append(
            CrossReference(
                target_topic=target,
                relationship=_text(item.get("relationship")) or "",
                strength=_enum(
                    item.get("strength"), RelationStrength, RelationStrength.MODERATE
                ),
            )
        )
    return refs


def _metadata(value: Any) -> Optional[OutlineMetadata]:
    if not isinstance(value, Mapping):
        return None
    return OutlineMetadata(
        complexity=_enum(value.get("complexity"), Complexity, Complexity.INTERMEDIATE),
        estimated_reading_time=clamp_number(
            value.get("estimatedReadingTime", 0), 0.0, float("inf"), 0.0
        ),
        key_takeaways=string_list(value.get("keyTakeaways")),
        suggested_readings=string_list(value.get("suggestedReadings")),
    )
