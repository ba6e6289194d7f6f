"""
Mind map generation pipeline.

Single entry point for callers::

    data = await MindMapPipeline().generate(prompt, file=upload, settings={...})

Stages, in order (any failure aborts the whole call):

    1. document extraction + merge   (only when a file is supplied)
    2. outline generation            (prompt synthesis → LLM → validation)
    3. graph building                (layout + hierarchy/cross-reference edges)

The pipeline keeps no state between calls.
"""
from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass
from typing import Any, Optional

from app.models.schemas import (
    DEFAULT_OUTLINE_METADATA,
    MindMapData,
    MindMapMetadata,
    merge_settings,
)
from app.services.document_parser import DocumentTextExtractor, merge_document_with_prompt
from app.services.graph_builder import build_graph
from app.services.llm_client import OutlineGenerationClient

logger = logging.getLogger(__name__)

MINDMAP_VERSION = "2.0"


@dataclass(frozen=True)
class UploadedDocument:
    """An uploaded source document, already read into memory."""

    filename: str
    content: bytes


class MindMapPipeline:
    """Prompt (+ optional document) → validated outline → positioned graph."""

    def __init__(
        self,
        client: Optional[OutlineGenerationClient] = None,
        extractor: Optional[DocumentTextExtractor] = None,
    ) -> None:
        self.client = client or OutlineGenerationClient()
        self._extractor = extractor

    @property
    def extractor(self) -> DocumentTextExtractor:
        # Built lazily: prompt-only generation never touches the OCR setup
        if self._extractor is None:
            self._extractor = DocumentTextExtractor()
        return self._extractor

    async def generate(
        self,
        prompt: str,
        file: Optional[UploadedDocument] = None,
        settings: Any = None,
    ) -> MindMapData:
        """
        Generate a complete mind map.

        Args:
            prompt:   Free-text subject of the mind map.
            file:     Optional PDF/DOCX whose text is merged into the prompt.
            settings: ``GenerationSettings`` or partial overrides mapping.

        Raises:
            ValueError:  *prompt* is blank.
            MindMapError subclasses from any stage.
        """
        if not prompt or not prompt.strip():
            raise ValueError("Prompt must not be empty.")

        merged = merge_settings(settings)
        final_prompt = prompt.strip()

        if file is not None:
            document_text = await self.extractor.extract_text(file.filename, file.content)
            final_prompt = merge_document_with_prompt(document_text, final_prompt)
            logger.info(
                "generate: merged %r into prompt (%d chars)",
                file.filename,
                len(final_prompt),
            )

        t0 = time.perf_counter()
        outline = await self.client.generate(final_prompt, merged)
        generation_ms = (time.perf_counter() - t0) * 1000

        graph = build_graph(outline, final_prompt, merged)
        outline_meta = outline.metadata or DEFAULT_OUTLINE_METADATA

        metadata = MindMapMetadata(
            **outline_meta.model_dump(),
            version=MINDMAP_VERSION,
            generation_time=round(generation_ms, 2),
        )

        logger.info(
            "generate: %d nodes / %d edges in %.0f ms",
            len(graph.nodes),
            len(graph.edges),
            generation_ms,
        )
        return MindMapData(
            id=uuid.uuid4().hex,
            title=prompt.strip(),
            prompt=prompt.strip(),
            nodes=graph.nodes,
            edges=graph.edges,
            settings=merged,
            metadata=metadata,
        )
