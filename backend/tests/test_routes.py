import os
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from memegen.config import get_settings
from memegen.main import app
from memegen.routes.images import resolve_image_path
from memegen.schemas.meme import GenerationStatus
from memegen.services.pipeline import MemePipeline, get_pipeline
from memegen.services.store import SYSTEM_PROMPT_KEY, GenerationStore, get_store


@pytest.fixture
def store(settings):
    return GenerationStore(settings=settings)


@pytest.fixture
def pipeline(store):
    pipeline = MagicMock(spec=MemePipeline)

    def fake_generate(prompt, generate_captions=True):
        generation_id = store.insert(prompt)
        store.update_status(generation_id, GenerationStatus.SUCCESS, "out.png")
        return store.get(generation_id)

    pipeline.generate.side_effect = fake_generate
    return pipeline


@pytest.fixture
def client(settings, store, pipeline):
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_pipeline] = lambda: pipeline
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_health_check(client):
    response = client.get("/api/v1/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_readiness_reports_missing_command(client, settings):
    settings.OLLAMA_COMMAND = "definitely-not-installed-ollama"

    response = client.get("/api/v1/health/ready")

    body = response.json()
    assert body["status"] == "not_ready"
    assert body["configuration"]["model_command_found"] is False
    assert body["warnings"]


def test_create_generation(client, pipeline):
    response = client.post("/api/v1/generations", json={"prompt": "  a cat  "})

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "success"
    assert body["prompt"] == "a cat"
    assert body["image_url"] == "/images/out.png"
    pipeline.generate.assert_called_once_with("a cat", True)


def test_create_generation_without_captions(client, pipeline):
    client.post("/api/v1/generations", json={"prompt": "a cat", "generate_captions": False})

    pipeline.generate.assert_called_once_with("a cat", False)


def test_failed_generation_is_returned(client, pipeline, store):
    def failing_generate(prompt, generate_captions=True):
        generation_id = store.insert(prompt)
        store.update_status(generation_id, GenerationStatus.FAILED, "", "ollama produced no output")
        return store.get(generation_id)

    pipeline.generate.side_effect = failing_generate

    response = client.post("/api/v1/generations", json={"prompt": "a cat"})

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "failed"
    assert body["error_message"] == "ollama produced no output"
    assert body["image_url"] is None


@pytest.mark.parametrize("payload", [{}, {"prompt": ""}, {"prompt": "   "}])
def test_create_generation_validation(client, payload):
    response = client.post("/api/v1/generations", json=payload)

    assert response.status_code == 422


def test_get_generation(client, store):
    generation_id = store.insert("a cat")

    response = client.get(f"/api/v1/generations/{generation_id}")

    assert response.status_code == 200
    assert response.json()["status"] == "processing"


def test_get_generation_not_found(client):
    response = client.get("/api/v1/generations/999")

    assert response.status_code == 404
    assert response.json()["detail"]["error"] == "generation_not_found"


def test_list_generations(client, store):
    for i in range(12):
        store.insert(f"prompt {i}")

    default = client.get("/api/v1/generations").json()
    limited = client.get("/api/v1/generations", params={"limit": 3}).json()

    assert len(default) == 10
    assert [g["prompt"] for g in limited] == ["prompt 11", "prompt 10", "prompt 9"]


def test_list_generations_rejects_bad_limit(client):
    assert client.get("/api/v1/generations", params={"limit": 0}).status_code == 422


def test_system_prompt_round_trip(client, store):
    response = client.put("/api/v1/settings/system-prompt", json={"system_prompt": "Only dogs."})

    assert response.status_code == 200
    assert store.get_setting(SYSTEM_PROMPT_KEY) == "Only dogs."
    assert client.get("/api/v1/settings/system-prompt").json() == {"system_prompt": "Only dogs."}


def test_serve_image(client, settings):
    os.makedirs(settings.OUTPUT_DIR)
    Image.new("RGB", (10, 10), "red").save(os.path.join(settings.OUTPUT_DIR, "out.png"))

    response = client.get("/images/out.png")

    assert response.status_code == 200
    assert response.headers["content-type"] == "image/png"
    assert response.content.startswith(b"\x89PNG")


def test_serve_missing_image(client):
    assert client.get("/images/missing.png").status_code == 404


def test_resolve_image_path_strips_traversal():
    assert resolve_image_path("generated", "../../etc/passwd") == os.path.join("generated", "passwd")
    assert resolve_image_path("generated", "..") is None
    assert resolve_image_path("generated", "") is None
