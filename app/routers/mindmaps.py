"""
Mind map generation and storage endpoints.

Route summary
-------------
POST   /generate            — prompt (+ optional PDF/DOCX) → positioned graph
GET    /settings/defaults   — default generation settings
POST   /                    — save a generated map for the current user
GET    /                    — list the current user's maps
GET    /{map_id}            — one saved map (graph + metadata)
DELETE /{map_id}            — delete a saved map
"""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.database import get_db
from app.dependencies.auth import (
    get_authorized_mindmap,
    get_current_user_id,
    get_or_create_user,
)
from app.models.database_models import MindMap, User
from app.models.schemas import (
    DEFAULT_SETTINGS,
    GenerationSettings,
    MindMapData,
    MindMapRecordResponse,
    MindMapSaveRequest,
    MindMapSummary,
)
from app.services.mindmap_store import MindMapStore, to_record_response, to_summary
from app.services.pipeline import MindMapPipeline, UploadedDocument

logger = logging.getLogger(__name__)

router = APIRouter()


def get_pipeline() -> MindMapPipeline:
    """Dependency returning the generation pipeline (overridden in tests)."""
    return MindMapPipeline()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _parse_settings_field(raw: Optional[str]) -> Dict[str, Any]:
    """Decode the multipart ``settings`` field (a JSON object) or raise 422."""
    if raw is None or not raw.strip():
        return {}
    try:
        value = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"settings must be a JSON object: {exc.msg}",
        )
    if not isinstance(value, dict):
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="settings must be a JSON object.",
        )
    return value


async def _read_upload(file: UploadFile) -> UploadedDocument:
    """Validate the upload's type and read it into memory under the size limit."""
    if not file.filename:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Upload must include a filename.",
        )

    file_ext = Path(file.filename).suffix.lower()
    if file_ext not in settings.SUPPORTED_FILE_TYPES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=(
                f"Unsupported file type '{file_ext}'. "
                f"Accepted: {', '.join(settings.SUPPORTED_FILE_TYPES)}"
            ),
        )

    chunks: List[bytes] = []
    file_size = 0
    while True:
        chunk = await file.read(1024 * 1024)   # 1 MB slices
        if not chunk:
            break
        file_size += len(chunk)
        if file_size > settings.MAX_FILE_SIZE:
            raise HTTPException(
                status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                detail=(
                    f"File exceeds the {settings.MAX_FILE_SIZE // (1024 * 1024)} MB "
                    "size limit."
                ),
            )
        chunks.append(chunk)

    logger.info("Received %r (%s bytes)", file.filename, f"{file_size:,}")
    return UploadedDocument(filename=file.filename, content=b"".join(chunks))


# ---------------------------------------------------------------------------
# Generation
# ---------------------------------------------------------------------------

@router.post("/generate", response_model=MindMapData)
async def generate_mindmap(
    prompt: str = Form(...),
    settings_json: Optional[str] = Form(None, alias="settings"),
    file: Optional[UploadFile] = File(None),
    pipeline: MindMapPipeline = Depends(get_pipeline),
) -> MindMapData:
    """
    Generate a mind map from a prompt and an optional PDF/DOCX.

    Multipart fields:

    - ``prompt``   — subject of the mind map (required)
    - ``settings`` — JSON object of generation settings (optional, camelCase)
    - ``file``     — source document merged into the prompt (optional)

    Structured pipeline failures are returned by the global handler with a
    machine-readable ``kind``.
    """
    if not prompt.strip():
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Prompt must not be empty.",
        )

    overrides = _parse_settings_field(settings_json)
    document = await _read_upload(file) if file is not None and file.filename else None

    return await pipeline.generate(prompt, file=document, settings=overrides)


@router.get("/settings/defaults", response_model=GenerationSettings)
async def default_settings() -> GenerationSettings:
    """Default generation settings, as the frontend's settings dialog shows them."""
    return DEFAULT_SETTINGS


# ---------------------------------------------------------------------------
# Storage
# ---------------------------------------------------------------------------

@router.post("", response_model=MindMapRecordResponse, status_code=status.HTTP_201_CREATED)
async def save_mindmap(
    body: MindMapSaveRequest,
    user: User = Depends(get_or_create_user),
    db: AsyncSession = Depends(get_db),
) -> MindMapRecordResponse:
    """Save a generated mind map for the authenticated user."""
    record = await MindMapStore(db).save(body.mindmap, user.id, title=body.title)
    return to_record_response(record)


@router.get("", response_model=List[MindMapSummary])
async def list_mindmaps(
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> List[MindMapSummary]:
    """List all mind maps belonging to the authenticated user, newest first."""
    records = await MindMapStore(db).list_for_user(user_id)
    return [to_summary(r) for r in records]


@router.get("/{map_id}", response_model=MindMapRecordResponse)
async def get_mindmap(
    record: MindMap = Depends(get_authorized_mindmap),
) -> MindMapRecordResponse:
    """Get one saved mind map with its full graph."""
    return to_record_response(record)


@router.delete(
    "/{map_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_model=None,
)
async def delete_mindmap(
    record: MindMap = Depends(get_authorized_mindmap),
    db: AsyncSession = Depends(get_db),
) -> None:
    """Delete a saved mind map."""
    await MindMapStore(db).delete(record)
