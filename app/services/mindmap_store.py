"""
Storage for generated mind maps.

The store receives a finished ``MindMapData`` plus an owner id and keeps the
graph, settings and metadata as JSON.  It never inspects or rewrites the graph.
"""
from __future__ import annotations

import logging
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.database_models import MindMap
from app.models.schemas import MindMapData, MindMapRecordResponse, MindMapSummary

logger = logging.getLogger(__name__)


class MindMapStore:
    """CRUD for saved mind maps, scoped by owner."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def save(
        self,
        data: MindMapData,
        user_id: str,
        title: Optional[str] = None,
    ) -> MindMap:
        """Persist *data* for *user_id*; *title* overrides the generated one."""
        record = MindMap(
            user_id=user_id,
            generation_id=data.id,
            title=(title or data.title).strip()[:255],
            prompt=data.prompt,
            nodes=[n.model_dump(mode="json", by_alias=True) for n in data.nodes],
            edges=[e.model_dump(mode="json", by_alias=True, exclude_none=True) for e in data.edges],
            settings=data.settings.model_dump(mode="json", by_alias=True),
            metadata_json=data.metadata.model_dump(mode="json", by_alias=True),
        )
        self.db.add(record)
        await self.db.flush()
        await self.db.refresh(record)
        logger.info(
            "Saved mind map id=%d title=%r for user=%s (%d nodes)",
            record.id,
            record.title,
            user_id,
            len(record.nodes),
        )
        return record

    async def list_for_user(self, user_id: str) -> List[MindMap]:
        """All maps owned by *user_id*, newest first."""
        result = await self.db.execute(
            select(MindMap)
            .where(MindMap.user_id == user_id)
            .order_by(MindMap.updated_at.desc(), MindMap.id.desc())
        )
        return list(result.scalars().all())

    async def get_for_user(self, map_id: int, user_id: str) -> Optional[MindMap]:
        """The map with *map_id* if it belongs to *user_id*, else None."""
        result = await self.db.execute(
            select(MindMap).where(
                MindMap.id == map_id,
                MindMap.user_id == user_id,
            )
        )
        return result.scalar_one_or_none()

    async def delete(self, record: MindMap) -> None:
        await self.db.delete(record)
        await self.db.flush()
        logger.info("Deleted mind map id=%d title=%r", record.id, record.title)


def to_summary(record: MindMap) -> MindMapSummary:
    return MindMapSummary(
        id=record.id,
        title=record.title,
        prompt=record.prompt,
        node_count=len(record.nodes or []),
        edge_count=len(record.edges or []),
        created_at=record.created_at,
        updated_at=record.updated_at,
    )


def to_record_response(record: MindMap) -> MindMapRecordResponse:
    return MindMapRecordResponse(
        id=record.id,
        title=record.title,
        prompt=record.prompt,
        nodes=record.nodes or [],
        edges=record.edges or [],
        settings=record.settings or {},
        metadata=record.metadata_json or {},
        created_at=record.created_at,
        updated_at=record.updated_at,
    )
