from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from api.app.engines.placeholder import PlaceholderEngine
from api.app.main import app, get_orchestrator
from api.app.orchestrator import GenerationOrchestrator


@pytest.fixture
def client():
    orchestrator = GenerationOrchestrator(PlaceholderEngine(), download_stagger_ms=250)
    app.dependency_overrides[get_orchestrator] = lambda: orchestrator
    yield TestClient(app)
    app.dependency_overrides.clear()


def png_file(name, image_bytes, color=(128, 128, 128)):
    return (name, image_bytes(color=color), "image/png")


def test_healthz(client):
    response = client.get("/healthz")
    assert response.status_code == 200
    assert response.json()["ok"] is True


def test_presets_list_options(client):
    data = client.get("/presets").json()
    assert data["custom_option"] == "custom"
    assert data["poses"][:2] == ["Joyful", "Winking"]
    assert len(data["poses"]) == 9
    assert "Tropical Beach" in data["backgrounds"]


def test_portrait_job_with_placeholder_engine(client, image_bytes):
    files = {"photo": png_file("me.png", image_bytes)}
    response = client.post("/studio/portrait", files=files, data={"style": "comic", "background": "Cozy Cafe"})
    assert response.status_code == 202
    accepted = response.json()
    assert accepted["mode"] == "portrait"
    assert accepted["count"] == 9
    assert accepted["items"][0] == {"label": "Joyful", "status": "pending", "loading": True, "src": None}

    state = client.get("/studio/state").json()
    assert state["running"] is False
    assert state["error"] is None
    assert [item["status"] for item in state["items"]] == ["success"] * 9
    assert state["items"][0]["src"].startswith("data:image/png;base64,")

    downloads = client.get("/studio/downloads").json()
    assert downloads["count"] == 9
    assert downloads["downloads"][1]["filename"] == "winking.png"
    assert downloads["downloads"][1]["delay_ms"] == 250


def test_portrait_rejects_undecodable_upload(client):
    files = {"photo": ("me.png", b"not an image", "image/png")}
    response = client.post("/studio/portrait", files=files)
    assert response.status_code == 400
    assert response.json()["detail"] == "Could not process the uploaded model file."


def test_portrait_requires_custom_background_text(client, image_bytes):
    files = {"photo": png_file("me.png", image_bytes)}
    response = client.post("/studio/portrait", files=files, data={"background": "custom"})
    assert response.status_code == 400
    assert response.json()["detail"] == "Please enter a custom background description."
    state = client.get("/studio/state").json()
    assert state["error"] == "Please enter a custom background description."
    assert state["count"] == 0


def test_portrait_rejects_unknown_background(client, image_bytes):
    files = {"photo": png_file("me.png", image_bytes)}
    response = client.post("/studio/portrait", files=files, data={"background": "The Moon"})
    assert response.status_code == 400
    assert response.json()["detail"] == "Unknown background option: The Moon"
    assert client.get("/studio/state").json()["error"] == "Unknown background option: The Moon"


def test_product_job_with_placeholder_engine(client, image_bytes):
    files = {
        "face": png_file("face.png", image_bytes),
        "product": png_file("can.png", image_bytes, color=(200, 50, 120)),
    }
    response = client.post("/studio/product", files=files, data={"context": "energy drink"})
    assert response.status_code == 202
    assert [item["label"] for item in response.json()["items"]][:2] == ["Pose 1", "Pose 2"]

    state = client.get("/studio/state").json()
    assert state["mode"] == "product"
    assert state["count"] == 9
    assert all("energy drink" in item["label"] for item in state["items"])
    assert all(item["status"] == "success" for item in state["items"])


def test_product_job_requires_both_images(client, image_bytes):
    files = {"face": png_file("face.png", image_bytes)}
    response = client.post("/studio/product", files=files)
    assert response.status_code == 400
    assert response.json()["detail"] == "Please upload both a face image and a product image."


def test_mockup_flow(client, image_bytes):
    response = client.post("/studio/mockup/base", data={"template": "Coffee Mug", "color": "White"})
    assert response.status_code == 200
    data = response.json()
    assert data["stage"] == "applyDesign"
    assert data["has_base_image"] is True

    design = {"design": png_file("logo.png", image_bytes, color=(10, 200, 10))}
    response = client.post("/studio/mockup/design", files=design, data={"remove_background": "false"})
    assert response.status_code == 202

    state = client.get("/studio/state").json()
    assert state["count"] == 1
    assert state["items"][0]["label"] == "Coffee Mug Mockup"
    assert state["items"][0]["status"] == "success"

    response = client.post("/studio/mockup/reset")
    assert response.json()["stage"] == "generateBase"
    assert response.json()["has_base_image"] is False

    response = client.post("/studio/mockup/design", files=design)
    assert response.status_code == 400


def test_mockup_with_uploaded_base(client, image_bytes):
    response = client.post("/studio/mockup/base/upload", files={"base": png_file("shirt.png", image_bytes)})
    assert response.status_code == 200
    assert response.json()["stage"] == "applyDesign"

    design = {"design": png_file("logo.png", image_bytes)}
    client.post("/studio/mockup/design", files=design, data={"placement": "custom", "custom_placement": "on the sleeve"})
    state = client.get("/studio/state").json()
    assert state["items"][0]["label"] == "Product Mockup"


def test_mode_switch_resets_mockup_stage(client, image_bytes):
    client.post("/studio/mockup/base/upload", files={"base": png_file("shirt.png", image_bytes)})
    client.post("/studio/mode", json={"mode": "portrait"})
    response = client.post("/studio/mode", json={"mode": "mockup"})
    data = response.json()
    assert data["stage"] == "generateBase"
    assert data["has_base_image"] is False


def test_metrics_count_requests(client):
    client.get("/healthz")
    data = client.get("/metrics").json()
    assert data["counters"]["requests_total"]["GET /healthz"] == 1


def test_unknown_mockup_placement_is_visible_in_state(client, image_bytes):
    client.post("/studio/mockup/base/upload", files={"base": png_file("shirt.png", image_bytes)})
    design = {"design": png_file("logo.png", image_bytes)}
    response = client.post("/studio/mockup/design", files=design, data={"placement": "On the moon"})
    assert response.status_code == 400

    state = client.get("/studio/state").json()
    assert state["error"] == "Unknown placement option: On the moon"
    assert state["count"] == 0
