import asyncio
import json
import logging
import time
from pathlib import Path

import httpx
import pytest
from fastapi.testclient import TestClient

import main
import pdf_generator
import ppt_generator
from export_service import ExportService
from generation import PresentationGenerator


class FakeGenerator(PresentationGenerator):
    def __init__(self, reply):
        super().__init__(client=None)
        self.reply = reply

    def call_model(self, prompt, system_instruction):
        return self.reply


DECK_REPLY = json.dumps({
    "title": "Bees",
    "slides": [{"title": f"S{i}", "content": ["x", "y"]} for i in range(4)],
})
PRESENTATION = {
    "title": "My Talk! 2024",
    "theme": "Talks",
    "slides": [{"title": "Hello", "content": ["a", "b"]}, {"title": "Bye", "content": "done"}],
    "createdAt": "2024-05-01T10:00:00Z",
}


@pytest.fixture
def export_dir(tmp_path):
    return tmp_path


@pytest.fixture
def client(export_dir):
    main.app.dependency_overrides[main.get_generator] = lambda: FakeGenerator(DECK_REPLY)
    main.app.dependency_overrides[main.get_export_service] = lambda: ExportService(export_dir)
    yield TestClient(main.app)
    main.app.dependency_overrides.clear()


def test_root_identifies_service(client):
    response = client.get("/")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/plain")
    assert response.text == "Slide Deck Generator - Backend"


def test_generate_returns_presentation(client):
    response = client.post("/api/presentation/generate", json={"theme": "Bees", "slidesCount": 4})

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["fallback"] is False
    assert len(body["presentation"]["slides"]) == 4
    assert body["presentation"]["theme"] == "Bees"


def test_generate_reports_fallback(client):
    main.app.dependency_overrides[main.get_generator] = lambda: FakeGenerator("I can't do that")

    response = client.post("/api/presentation/generate", json={"theme": "Bees", "slidesCount": 5})

    body = response.json()
    assert body["fallback"] is True
    assert body["presentation"]["slides"][-1]["title"] == "Conclusion"


@pytest.mark.parametrize("payload", [
    {},
    {"theme": "Bees"},
    {"slidesCount": 5},
    {"theme": "   ", "slidesCount": 5},
    {"theme": "Bees", "slidesCount": 2},
    {"theme": "Bees", "slidesCount": 21},
    {"theme": "Bees", "slidesCount": "many"},
])
def test_generate_rejects_bad_input(client, payload):
    response = client.post("/api/presentation/generate", json=payload)

    assert response.status_code == 400
    assert response.json()["detail"]


def test_generate_slide(client):
    main.app.dependency_overrides[main.get_generator] = lambda: FakeGenerator(
        json.dumps({"title": "Pollination", "content": ["one", "two", "three"]})
    )

    response = client.post(
        "/api/presentation/generate-slide", json={"title": "Pollination", "context": "Bees"}
    )

    assert response.status_code == 200
    assert response.json()["slide"]["content"] == ["one", "two", "three"]


def test_generate_slide_requires_title(client):
    response = client.post("/api/presentation/generate-slide", json={"context": "Bees"})

    assert response.status_code == 400


def test_export_pptx(client, export_dir):
    response = client.post("/api/presentation/export", json={"presentation": PRESENTATION, "format": "PPTX"})

    assert response.status_code == 200
    assert response.headers["content-type"] == main.MEDIA_TYPES["pptx"]
    disposition = response.headers["content-disposition"]
    assert disposition.startswith('attachment; filename="my_talk_2024_')
    assert disposition.endswith('.pptx"')
    assert response.content[:2] == b"PK"
    assert len(list(export_dir.iterdir())) == 1


def test_export_pdf(client, monkeypatch):
    async def fake_write_pdf(html_content, filepath):
        Path(filepath).write_bytes(b"%PDF-1.4 fake")

    monkeypatch.setattr(pdf_generator, "write_pdf", fake_write_pdf)

    response = client.post("/api/presentation/export", json={"presentation": PRESENTATION, "format": "pdf"})

    assert response.status_code == 200
    assert response.headers["content-type"] == "application/pdf"
    assert response.content == b"%PDF-1.4 fake"


def test_export_rejects_unknown_format_before_rendering(client, export_dir, monkeypatch):
    def must_not_render(_presentation):
        raise AssertionError("renderer should not run")

    monkeypatch.setattr(ppt_generator, "create_presentation", must_not_render)

    response = client.post("/api/presentation/export", json={"presentation": PRESENTATION, "format": "docx"})

    assert response.status_code == 400
    assert list(export_dir.iterdir()) == []


@pytest.mark.parametrize("payload", [
    {"format": "pptx"},
    {"presentation": PRESENTATION},
    {"presentation": {**PRESENTATION, "slides": []}, "format": "pptx"},
])
def test_export_rejects_missing_fields(client, payload):
    response = client.post("/api/presentation/export", json=payload)

    assert response.status_code == 400


def test_export_failure_is_opaque_500(client, monkeypatch):
    def boom(_presentation):
        raise RuntimeError("secret internal detail")

    monkeypatch.setattr(ppt_generator, "create_presentation", boom)

    response = client.post("/api/presentation/export", json={"presentation": PRESENTATION, "format": "pptx"})

    assert response.status_code == 500
    assert response.json()["detail"] == "Export failed"


class SlowGenerator(FakeGenerator):
    def call_model(self, prompt, system_instruction):
        time.sleep(1.0)
        return self.reply


def _root_latency_during(path, body):
    """Posts `body` to `path` and measures a concurrent GET / while it is in flight."""
    async def scenario():
        transport = httpx.ASGITransport(app=main.app)
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as async_client:
            async def timed_root():
                await asyncio.sleep(0.1)
                started = time.perf_counter()
                response = await async_client.get("/")
                return response, time.perf_counter() - started

            posted, (root, latency) = await asyncio.gather(async_client.post(path, json=body), timed_root())
        return posted, root, latency

    return asyncio.run(scenario())


def test_slow_generation_does_not_block_other_requests(client):
    main.app.dependency_overrides[main.get_generator] = lambda: SlowGenerator(DECK_REPLY)

    generated, root, latency = _root_latency_during(
        "/api/presentation/generate", {"theme": "Bees", "slidesCount": 4}
    )

    assert generated.status_code == 200
    assert root.status_code == 200
    assert latency < 0.5


def test_slow_pptx_render_does_not_block_other_requests(client, monkeypatch):
    render = ppt_generator.create_presentation

    def slow_render(presentation):
        time.sleep(1.0)
        return render(presentation)

    monkeypatch.setattr(ppt_generator, "create_presentation", slow_render)

    exported, root, latency = _root_latency_during(
        "/api/presentation/export", {"presentation": PRESENTATION, "format": "pptx"}
    )

    assert exported.status_code == 200
    assert root.status_code == 200
    assert latency < 0.5


def test_cleanup_task_sweeps_on_interval(tmp_path):
    service = ExportService(tmp_path)
    for name in ("a.pptx", "b.pdf"):
        (tmp_path / name).write_bytes(b"x")

    async def scenario():
        task = asyncio.create_task(main.cleanup_periodically(service, 0.01, 0))
        try:
            for _ in range(200):
                if not any(tmp_path.iterdir()):
                    break
                await asyncio.sleep(0.01)
        finally:
            task.cancel()

    asyncio.run(scenario())

    assert list(tmp_path.iterdir()) == []


class FlakyCleanupService:
    def __init__(self):
        self.calls = 0

    def cleanup_old_files(self, max_age_hours):
        self.calls += 1
        if self.calls == 1:
            raise RuntimeError("disk vanished")
        return []


def test_cleanup_task_keeps_running_after_a_failed_sweep(caplog):
    service = FlakyCleanupService()

    async def scenario():
        task = asyncio.create_task(main.cleanup_periodically(service, 0.01, 24))
        try:
            for _ in range(200):
                if service.calls >= 2:
                    break
                await asyncio.sleep(0.01)
        finally:
            task.cancel()

    with caplog.at_level(logging.ERROR):
        asyncio.run(scenario())

    assert service.calls >= 2
    assert "Export cleanup sweep failed" in caplog.text
