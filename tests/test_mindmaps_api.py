"""Tests for /api/mindmaps: generation, error mapping, and saved-map CRUD."""
import json

import pytest
from httpx import AsyncClient

from app.config import settings
from app.main import app
from app.routers.mindmaps import get_pipeline
from app.services.pipeline import MindMapPipeline
from tests.conftest import AUTH_HEADERS, mock_llm_client, outline_json


class FakeExtractor:
    async def extract_text(self, filename, content):
        return "Extracted document body"


def use_pipeline(pipeline: MindMapPipeline) -> None:
    app.dependency_overrides[get_pipeline] = lambda: pipeline


async def _generated_map(sample_outline) -> dict:
    pipeline = MindMapPipeline(client=mock_llm_client(outline_json(sample_outline)))
    data = await pipeline.generate("Plants", settings={"crossTopicRelations": True})
    return data.model_dump(mode="json", by_alias=True)


async def _save(client: AsyncClient, mindmap: dict, title=None, headers=AUTH_HEADERS):
    body = {"mindmap": mindmap}
    if title is not None:
        body["title"] = title
    return await client.post("/api/mindmaps", json=body, headers=headers)


# ---------------------------------------------------------------------------
# Generation
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_generate_returns_graph(client: AsyncClient, sample_outline):
    use_pipeline(MindMapPipeline(client=mock_llm_client(outline_json(sample_outline))))

    resp = await client.post(
        "/api/mindmaps/generate",
        data={"prompt": "Plants", "settings": json.dumps({"crossTopicRelations": True})},
    )

    assert resp.status_code == 200
    data = resp.json()
    assert data["title"] == "Plants"
    assert [n["id"] for n in data["nodes"]][:2] == ["root", "topic-0"]
    assert data["edges"][-1]["id"] == "cross-edge-0-1"
    assert data["settings"]["crossTopicRelations"] is True
    assert data["metadata"]["version"] == "2.0"
    assert "generationTime" in data["metadata"]
    assert data["nodes"][1]["style"]["backgroundColor"] == "#3B82F6"


@pytest.mark.asyncio
async def test_generate_with_document(client: AsyncClient, sample_outline):
    captured = []
    use_pipeline(
        MindMapPipeline(
            client=mock_llm_client(outline_json(sample_outline), captured=captured),
            extractor=FakeExtractor(),
        )
    )

    resp = await client.post(
        "/api/mindmaps/generate",
        data={"prompt": "Summarise"},
        files={"file": ("notes.pdf", b"%PDF-1.4 fake", "application/pdf")},
    )

    assert resp.status_code == 200
    sent = json.loads(captured[0].content)["messages"][1]["content"]
    assert "Extracted document body" in sent
    assert resp.json()["nodes"][0]["data"]["label"] == sent


@pytest.mark.asyncio
async def test_generate_transport_error_maps_to_502(client: AsyncClient):
    use_pipeline(
        MindMapPipeline(
            client=mock_llm_client(status_code=401, body={"error": {"message": "Bad key"}})
        )
    )

    resp = await client.post("/api/mindmaps/generate", data={"prompt": "Plants"})

    assert resp.status_code == 502
    body = resp.json()
    assert body["kind"] == "TRANSPORT_ERROR"
    assert body["detail"] == "Bad key"
    assert body["details"]["status_code"] == 401


@pytest.mark.asyncio
async def test_generate_invalid_outline_reports_indices(client: AsyncClient):
    content = json.dumps({"topics": [{"title": "A", "subtopics": [{"title": "S"}]}]})
    use_pipeline(MindMapPipeline(client=mock_llm_client(content)))

    resp = await client.post("/api/mindmaps/generate", data={"prompt": "Plants"})

    assert resp.status_code == 502
    body = resp.json()
    assert body["kind"] == "INVALID_SUBTOPIC"
    assert body["details"]["topic_index"] == 0
    assert body["details"]["subtopic_index"] == 0


@pytest.mark.asyncio
async def test_generate_blank_prompt(client: AsyncClient, sample_outline):
    use_pipeline(MindMapPipeline(client=mock_llm_client(outline_json(sample_outline))))
    resp = await client.post("/api/mindmaps/generate", data={"prompt": "   "})
    assert resp.status_code == 422


@pytest.mark.asyncio
@pytest.mark.parametrize("raw", ["{not json", "[1, 2]"])
async def test_generate_rejects_bad_settings(client: AsyncClient, sample_outline, raw):
    use_pipeline(MindMapPipeline(client=mock_llm_client(outline_json(sample_outline))))
    resp = await client.post(
        "/api/mindmaps/generate", data={"prompt": "Plants", "settings": raw}
    )
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_generate_rejects_unsupported_upload(client: AsyncClient, sample_outline):
    use_pipeline(MindMapPipeline(client=mock_llm_client(outline_json(sample_outline))))
    resp = await client.post(
        "/api/mindmaps/generate",
        data={"prompt": "Plants"},
        files={"file": ("notes.txt", b"hello", "text/plain")},
    )
    assert resp.status_code == 400
    assert "Unsupported file type" in resp.json()["detail"]


@pytest.mark.asyncio
async def test_generate_rejects_oversized_upload(
    client: AsyncClient, sample_outline, monkeypatch
):
    monkeypatch.setattr(settings, "MAX_FILE_SIZE", 8)
    use_pipeline(MindMapPipeline(client=mock_llm_client(outline_json(sample_outline))))
    resp = await client.post(
        "/api/mindmaps/generate",
        data={"prompt": "Plants"},
        files={"file": ("big.pdf", b"0123456789abcdef", "application/pdf")},
    )
    assert resp.status_code == 413


@pytest.mark.asyncio
async def test_default_settings_endpoint(client: AsyncClient):
    resp = await client.get("/api/mindmaps/settings/defaults")
    assert resp.status_code == 200
    data = resp.json()
    assert data["maxTokens"] == 2500
    assert data["maxTopics"] == 5
    assert data["topicDepth"] == "balanced"


# ---------------------------------------------------------------------------
# Saved maps
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_save_and_fetch(client: AsyncClient, sample_outline):
    mindmap = await _generated_map(sample_outline)

    resp = await _save(client, mindmap, title="My plants")
    assert resp.status_code == 201
    saved = resp.json()
    assert saved["title"] == "My plants"
    assert saved["prompt"] == "Plants"
    assert len(saved["nodes"]) == 7
    assert len(saved["edges"]) == 7

    resp = await client.get(f"/api/mindmaps/{saved['id']}", headers=AUTH_HEADERS)
    assert resp.status_code == 200
    fetched = resp.json()
    assert [n["id"] for n in fetched["nodes"]] == [n["id"] for n in mindmap["nodes"]]
    assert fetched["settings"]["crossTopicRelations"] is True
    assert fetched["metadata"]["keyTakeaways"] == ["Energy flows"]


@pytest.mark.asyncio
async def test_save_defaults_title_to_generated_title(client: AsyncClient, sample_outline):
    resp = await _save(client, await _generated_map(sample_outline))
    assert resp.status_code == 201
    assert resp.json()["title"] == "Plants"


@pytest.mark.asyncio
async def test_list_is_scoped_and_newest_first(client: AsyncClient, sample_outline):
    mindmap = await _generated_map(sample_outline)
    await _save(client, mindmap, title="First")
    await _save(client, mindmap, title="Second")

    resp = await client.get("/api/mindmaps", headers=AUTH_HEADERS)
    assert resp.status_code == 200
    items = resp.json()
    assert [i["title"] for i in items] == ["Second", "First"]
    assert items[0]["node_count"] == 7
    assert items[0]["edge_count"] == 7


@pytest.mark.asyncio
async def test_delete(client: AsyncClient, sample_outline):
    resp = await _save(client, await _generated_map(sample_outline))
    map_id = resp.json()["id"]

    resp = await client.delete(f"/api/mindmaps/{map_id}", headers=AUTH_HEADERS)
    assert resp.status_code == 204

    resp = await client.get(f"/api/mindmaps/{map_id}", headers=AUTH_HEADERS)
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_save_rejects_invalid_graph(client: AsyncClient):
    resp = await client.post(
        "/api/mindmaps", json={"mindmap": {"nodes": "nope"}}, headers=AUTH_HEADERS
    )
    assert resp.status_code == 422
