from __future__ import annotations

import asyncio
import base64
from types import SimpleNamespace

import pytest

from api.app.engines.gemini_adapter import GeminiEngine, parse_pose_list
from api.app.errors import EngineError
from api.app.metrics import snapshot


def image_response(data: bytes = b"generated-png"):
    part = SimpleNamespace(text=None, inline_data=SimpleNamespace(data=data, mime_type="image/png"))
    return SimpleNamespace(candidates=[SimpleNamespace(content=SimpleNamespace(parts=[part]))], text=None)


def text_response(text: str):
    part = SimpleNamespace(text=text, inline_data=None)
    return SimpleNamespace(candidates=[SimpleNamespace(content=SimpleNamespace(parts=[part]))], text=text)


class FakeModels:
    def __init__(self, outcomes):
        self.outcomes = list(outcomes)
        self.requests = []

    async def generate_content(self, *, model, contents, config):
        self.requests.append({"model": model, "contents": contents, "config": config})
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def make_engine(*outcomes, max_attempts=3):
    models = FakeModels(outcomes)
    client = SimpleNamespace(aio=SimpleNamespace(models=models))
    engine = GeminiEngine(client=client, max_attempts=max_attempts, retry_backoff_seconds=0)
    return engine, models


def test_variation_returns_base64_image(png_image):
    engine, models = make_engine(image_response(b"abc"))

    result = asyncio.run(engine.generate_variation(png_image, "Winking", "pop art", "Plain White"))

    assert result == base64.b64encode(b"abc").decode("ascii")
    request = models.requests[0]
    assert request["model"] == "gemini-2.5-flash-image"
    prompt = request["contents"][-1]
    assert '"Winking", in the style of pop art' in prompt
    assert "The background must be: Plain White." in prompt


def test_missing_image_part_is_an_api_error(png_image):
    engine, _ = make_engine(text_response("I cannot do that"))

    with pytest.raises(EngineError) as excinfo:
        asyncio.run(engine.generate_pose_image(png_image, png_image, "Waving", "Cozy Cafe"))

    assert excinfo.value.message == "Gemini API Error: No image data found in the API response."
    counters = snapshot()["counters"]["engine_calls_total"]
    assert counters["engine=gemini op=product_pose outcome=error"] == 1


def test_unavailable_errors_are_retried():
    engine, models = make_engine(RuntimeError("503 UNAVAILABLE"), image_response())

    result = asyncio.run(engine.generate_base_mockup("blank mug"))

    assert result == base64.b64encode(b"generated-png").decode("ascii")
    assert len(models.requests) == 2
    assert models.requests[0]["contents"] == ["blank mug"]


def test_other_errors_are_not_retried(png_image):
    engine, models = make_engine(ValueError("400 INVALID_ARGUMENT"), image_response())

    with pytest.raises(EngineError) as excinfo:
        asyncio.run(engine.apply_design(png_image, png_image, "put it on the front"))

    assert excinfo.value.message == "Gemini API Error: 400 INVALID_ARGUMENT"
    assert len(models.requests) == 1


def test_retries_stop_after_max_attempts():
    engine, models = make_engine(
        RuntimeError("503 UNAVAILABLE"), RuntimeError("503 UNAVAILABLE"), max_attempts=2
    )
    with pytest.raises(EngineError):
        asyncio.run(engine.generate_base_mockup("blank mug"))
    assert len(models.requests) == 2


def test_pose_prompts_parse_the_json_schema_response(png_image):
    engine, models = make_engine(text_response('```json\n{"poses": ["Hold it high", " ", "Wink"]}\n```'))

    poses = asyncio.run(engine.generate_pose_prompts(png_image, ""))

    assert poses == ["Hold it high", "Wink"]
    request = models.requests[0]
    assert request["model"] == "gemini-2.5-flash"
    assert request["config"].response_mime_type == "application/json"
    assert "general product advertising" in request["contents"][-1]


def test_malformed_pose_json_is_an_api_error():
    with pytest.raises(EngineError) as excinfo:
        parse_pose_list("not json at all")
    assert excinfo.value.message.startswith("Gemini API Error: Malformed pose list")


def test_pose_json_without_list_is_an_api_error():
    with pytest.raises(EngineError):
        parse_pose_list('{"ideas": []}')


def test_missing_api_key_fails_the_call(png_image):
    engine = GeminiEngine(api_key=None)
    with pytest.raises(EngineError) as excinfo:
        asyncio.run(engine.generate_variation(png_image, "Sad", "", "Plain White"))
    assert excinfo.value.message == "Gemini API Error: GEMINI_API_KEY is not configured."
