from __future__ import annotations

import base64
import io
from typing import Callable, Iterable, List, Optional

import pytest
from PIL import Image

from api.app import metrics
from api.app.engines import GenerationEngine
from api.app.errors import EngineError
from api.app.jobs import ModelImage
from api.app.orchestrator import GenerationOrchestrator


def make_image(width: int = 64, height: int = 80, color=(128, 128, 128)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (width, height), color=color).save(buffer, format="PNG")
    return buffer.getvalue()


class FakeEngine(GenerationEngine):
    """Scripted engine: records calls and fails for selected instructions."""

    name = "fake"

    def __init__(
        self,
        *,
        fail_on: Iterable[str] = (),
        pose_prompts: Optional[List[str]] = None,
        prompts_error: Optional[str] = None,
    ) -> None:
        self.fail_on = set(fail_on)
        self.pose_prompts = (
            list(pose_prompts) if pose_prompts is not None else [f"Pose idea {i}" for i in range(1, 10)]
        )
        self.prompts_error = prompts_error
        self.calls: List[tuple] = []
        self.before_call: Optional[Callable[[str, str], None]] = None

    async def _image(self, operation: str, key: str, **extra) -> str:
        self.calls.append((operation, key, extra))
        if self.before_call is not None:
            self.before_call(operation, key)
        if key in self.fail_on:
            raise EngineError(f"Gemini API Error: boom for {key}")
        return f"payload-{len(self.calls)}"

    async def generate_variation(self, source_image, pose_instruction, style_text, background_text):
        return await self._image(
            "variation", pose_instruction, style=style_text, background=background_text
        )

    async def generate_pose_prompts(self, product_image, context_text):
        self.calls.append(("pose_prompts", context_text, {}))
        if self.prompts_error:
            raise EngineError(self.prompts_error)
        return list(self.pose_prompts)

    async def generate_pose_image(self, face_image, product_image, pose_instruction, background_text):
        return await self._image("product_pose", pose_instruction, background=background_text)

    async def generate_base_mockup(self, prompt_text):
        return await self._image("base_mockup", prompt_text)

    async def apply_design(self, base_image, design_image, instruction_text):
        return await self._image("apply_design", instruction_text, base=base_image.data)


@pytest.fixture
def png_image() -> ModelImage:
    return ModelImage(data=base64.b64encode(make_image()).decode("ascii"), mime_type="image/png")


@pytest.fixture
def engine() -> FakeEngine:
    return FakeEngine()


@pytest.fixture
def orchestrator(engine: FakeEngine) -> GenerationOrchestrator:
    return GenerationOrchestrator(engine, download_stagger_ms=250)


@pytest.fixture
def image_bytes() -> Callable[..., bytes]:
    return make_image


@pytest.fixture(autouse=True)
def _reset_metrics():
    metrics.reset()
    yield
