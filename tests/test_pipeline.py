"""Tests for the end-to-end generation pipeline (LLM and extractor stubbed)."""
import pytest

from app.models.schemas import Complexity, GenerationSettings
from app.services.document_parser import DOCUMENT_PREAMBLE
from app.services.errors import DocumentExtractionError, ParseError
from app.services.outline_validator import parse_outline
from app.services.pipeline import MindMapPipeline, UploadedDocument
from tests.conftest import mock_llm_client, outline_json


class RecordingClient:
    """Stands in for OutlineGenerationClient and records its calls."""

    def __init__(self, outline):
        self.outline = outline
        self.calls = []

    async def generate(self, prompt, settings=None):
        self.calls.append((prompt, settings))
        return self.outline


class FakeExtractor:
    def __init__(self, text="Chlorophyll absorbs   light.", error=None):
        self.text = text
        self.error = error
        self.calls = []

    async def extract_text(self, filename, content):
        self.calls.append((filename, content))
        if self.error is not None:
            raise self.error
        return self.text


@pytest.mark.asyncio
async def test_generate_returns_complete_mindmap(sample_outline):
    pipeline = MindMapPipeline(client=mock_llm_client(outline_json(sample_outline)))

    data = await pipeline.generate("  Plants  ", settings={"maxTopics": 6})

    assert data.title == "Plants"
    assert data.prompt == "Plants"
    assert len(data.id) == 32
    assert len(data.nodes) == 7
    assert len(data.edges) == 6
    assert data.nodes[0].data.label == "Plants"
    assert isinstance(data.settings, GenerationSettings)
    assert data.settings.max_topics == 6
    assert data.metadata.version == "2.0"
    assert data.metadata.complexity is Complexity.BASIC
    assert data.metadata.estimated_reading_time == 12
    assert data.metadata.generation_time >= 0


@pytest.mark.asyncio
async def test_cross_topic_setting_reaches_graph_builder(sample_outline):
    pipeline = MindMapPipeline(client=RecordingClient(parse_outline(sample_outline)))
    data = await pipeline.generate("Plants", settings={"crossTopicRelations": True})
    assert data.edges[-1].id == "cross-edge-0-1"


@pytest.mark.asyncio
async def test_settings_are_merged_before_the_client_sees_them(sample_outline):
    client = RecordingClient(parse_outline(sample_outline))
    await MindMapPipeline(client=client).generate("Plants", settings={"maxTopics": 999})
    _, settings = client.calls[0]
    assert isinstance(settings, GenerationSettings)
    assert settings.max_topics == 100


@pytest.mark.asyncio
async def test_document_text_is_merged_into_prompt(sample_outline):
    client = RecordingClient(parse_outline(sample_outline))
    extractor = FakeExtractor()
    pipeline = MindMapPipeline(client=client, extractor=extractor)

    data = await pipeline.generate(
        "Summarise this",
        file=UploadedDocument(filename="notes.pdf", content=b"%PDF-fake"),
    )

    assert extractor.calls == [("notes.pdf", b"%PDF-fake")]
    sent_prompt, _ = client.calls[0]
    assert sent_prompt.startswith("Summarise this\n\n" + DOCUMENT_PREAMBLE)
    assert "Chlorophyll absorbs light." in sent_prompt
    # Root shows the merged prompt; title keeps the user's own words
    assert data.nodes[0].data.label == sent_prompt
    assert data.title == "Summarise this"


@pytest.mark.asyncio
async def test_extraction_failure_aborts_before_llm_call(sample_outline):
    client = RecordingClient(parse_outline(sample_outline))
    extractor = FakeExtractor(error=DocumentExtractionError("No text"))
    pipeline = MindMapPipeline(client=client, extractor=extractor)

    with pytest.raises(DocumentExtractionError):
        await pipeline.generate(
            "x", file=UploadedDocument(filename="scan.pdf", content=b"...")
        )
    assert client.calls == []


@pytest.mark.asyncio
async def test_client_failure_propagates():
    pipeline = MindMapPipeline(client=mock_llm_client("not json"))
    with pytest.raises(ParseError):
        await pipeline.generate("Plants")


@pytest.mark.asyncio
@pytest.mark.parametrize("prompt", ["", "   ", None])
async def test_blank_prompt_is_rejected(prompt, sample_outline):
    client = RecordingClient(parse_outline(sample_outline))
    with pytest.raises(ValueError):
        await MindMapPipeline(client=client).generate(prompt)
    assert client.calls == []


@pytest.mark.asyncio
async def test_each_call_gets_a_fresh_id(sample_outline):
    pipeline = MindMapPipeline(client=RecordingClient(parse_outline(sample_outline)))
    first = await pipeline.generate("Plants")
    second = await pipeline.generate("Plants")
    assert first.id != second.id
    assert first.nodes == second.nodes
