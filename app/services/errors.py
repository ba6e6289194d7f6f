"""
Error taxonomy for the mind map generation pipeline.

Every failure carries a stable machine-readable ``kind`` and a human-readable
message.  Errors are terminal for the current generation call; nothing in the
pipeline retries them.

Kinds
-----
TRANSPORT_ERROR            network failure, timeout, or non-2xx status
MALFORMED_REPLY            LLM reply is missing the expected text payload
PARSE_ERROR                payload is not JSON after fence stripping
INVALID_RESPONSE           outline root is not an object with a topics list
INVALID_TOPIC              bad topic at (i)
INVALID_SUBTOPIC           bad subtopic at (i, j)
INVALID_POINT              bad point at (i, j, k)
DOCUMENT_EXTRACTION_ERROR  uploaded document could not be turned into text
"""
from __future__ import annotations

import json
from typing import Any, Dict, Optional

from app.utils.helpers import truncate_text

SNIPPET_LENGTH = 200


def value_snippet(value: Any, max_length: int = SNIPPET_LENGTH) -> str:
    """Render *value* as a short JSON-ish string for diagnostics."""
    try:
        text = json.dumps(value, ensure_ascii=False, default=str)
    except (TypeError, ValueError):
        text = repr(value)
    return truncate_text(text, max_length)


class MindMapError(Exception):
    """Base class for every structured pipeline failure."""

    kind: str = "GENERATION_ERROR"
    http_status: int = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details: Dict[str, Any] = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "message": self.message, "details": self.details}

    def __repr__(self) -> str:
        return f"{type(self).__name__}(kind={self.kind!r}, message={self.message!r})"


class TransportError(MindMapError):
    """The request to the LLM service could not complete successfully."""

    kind = "TRANSPORT_ERROR"
    http_status = 502


class MalformedReply(MindMapError):
    """The LLM service answered, but without ``choices[0].message.content``."""

    kind = "MALFORMED_REPLY"
    http_status = 502


class ParseError(MindMapError):
    """The textual payload is not valid JSON."""

    kind = "PARSE_ERROR"
    http_status = 502


class DocumentExtractionError(MindMapError):
    """Text could not be extracted from an uploaded document."""

    kind = "DOCUMENT_EXTRACTION_ERROR"
    http_status = 422


# ---------------------------------------------------------------------------
# Outline schema violations
# ---------------------------------------------------------------------------

class OutlineValidationError(MindMapError):
    """Base class for outline schema violations; carries the offending value."""

    kind = "INVALID_OUTLINE"
    http_status = 502

    def __init__(self, message: str, value: Any = None, **indices: int) -> None:
        details: Dict[str, Any] = dict(indices)
        details["snippet"] = value_snippet(value)
        super().__init__(message, details)
        self.indices = indices
        self.snippet = details["snippet"]


class InvalidResponse(OutlineValidationError):
    kind = "INVALID_RESPONSE"

    def __init__(self, value: Any = None) -> None:
        super().__init__("Invalid response structure", value)


class InvalidTopic(OutlineValidationError):
    kind = "INVALID_TOPIC"

    def __init__(self, topic_index: int, value: Any = None) -> None:
        super().__init__(
            f"Invalid topic at index {topic_index}",
            value,
            topic_index=topic_index,
        )
        self.topic_index = topic_index


class InvalidSubtopic(OutlineValidationError):
    kind = "INVALID_SUBTOPIC"

    def __init__(self, topic_index: int, subtopic_index: int, value: Any = None) -> None:
        super().__init__(
            f"Invalid subtopic at topic {topic_index}, subtopic {subtopic_index}",
            value,
            topic_index=topic_index,
            subtopic_index=subtopic_index,
        )
        self.topic_index = topic_index
        self.subtopic_index = subtopic_index


class InvalidPoint(OutlineValidationError):
    kind = "INVALID_POINT"

    def __init__(
        self,
        topic_index: int,
        subtopic_index: int,
        point_index: int,
        value: Any = None,
    ) -> None:
        super().__init__(
            f"Invalid point at topic {topic_index}, subtopic {subtopic_index}, "
            f"point {point_index}",
            value,
            topic_index=topic_index,
            subtopic_index=subtopic_index,
            point_index=point_index,
        )
        self.topic_index = topic_index
        self.subtopic_index = subtopic_index
        self.point_index = point_index
