from __future__ import annotations

import base64
import io
import logging
import textwrap
import zlib
from typing import List, Tuple

from PIL import Image, ImageDraw, ImageFont, ImageOps

from ..errors import EngineError
from ..jobs import ModelImage
from ..metrics import EngineCallTimer
from ..presets import PRODUCT_POSE_COUNT
from .base import GenerationEngine

logger = logging.getLogger(__name__)

PREVIEW_SIZE = (512, 640)

_COLORS = [
    (66, 135, 245),
    (245, 163, 66),
    (126, 217, 87),
    (255, 99, 146),
    (148, 112, 255),
]

_POSE_TEMPLATES = [
    "Holding the {subject} up next to the face with a bright smile",
    "Presenting the {subject} toward the camera with both hands",
    "Looking at the {subject} with curiosity, head tilted",
    "Pointing at the {subject} while laughing",
    "Cradling the {subject} close to the chest, eyes closed",
    "Giving a thumbs up beside the {subject}",
    "Resting the {subject} on one shoulder, confident stance",
    "Showing the {subject} over one shoulder, looking back",
    "Unboxing the {subject} with a surprised expression",
]


def _color_for(text: str) -> Tuple[int, int, int]:
    return _COLORS[zlib.crc32(text.encode("utf-8")) % len(_COLORS)]


def _encode(image: Image.Image) -> str:
    buffer = io.BytesIO()
    image.convert("RGB").save(buffer, format="PNG")
    return base64.b64encode(buffer.getvalue()).decode("ascii")


def _decode(image: ModelImage, field: str) -> Image.Image:
    try:
        return Image.open(io.BytesIO(base64.b64decode(image.data))).convert("RGBA")
    except Exception as exc:  # pylint: disable=broad-except
        raise EngineError(f"Placeholder engine could not read the {field} image: {exc}") from exc


def _draw_caption(image: Image.Image, lines: List[str]) -> None:
    draw = ImageDraw.Draw(image)
    font = ImageFont.load_default()
    wrapped: List[str] = []
    for line in lines:
        wrapped.extend(textwrap.wrap(line, width=48) or [""])

    y = image.height - 24 - 18 * len(wrapped)
    draw.rectangle([(0, y - 12), (image.width, image.height)], fill=(0, 0, 0))
    for line in wrapped:
        bbox = draw.textbbox((0, 0), line, font=font)
        text_width = bbox[2] - bbox[0]
        draw.text(((image.width - text_width) / 2, y), line, fill=(255, 255, 255), font=font)
        y += 18


class PlaceholderEngine(GenerationEngine):
    """Offline engine that renders labelled previews with Pillow."""

    name = "placeholder"

    def _render(self, base: Image.Image, lines: List[str]) -> str:
        canvas = ImageOps.fit(base.convert("RGB"), PREVIEW_SIZE)
        _draw_caption(canvas, lines)
        return _encode(canvas)

    async def generate_variation(
        self,
        source_image: ModelImage,
        pose_instruction: str,
        style_text: str,
        background_text: str,
    ) -> str:
        with EngineCallTimer("variation", self.name):
            source = _decode(source_image, "source")
            lines = ["Pose Studio Preview", pose_instruction, f"Background: {background_text}"]
            if style_text:
                lines.append(f"Style: {style_text}")
            return self._render(source, lines)

    async def generate_pose_prompts(self, product_image: ModelImage, context_text: str) -> List[str]:
        with EngineCallTimer("pose_prompts", self.name):
            _decode(product_image, "product")
            subject = "product"
            if context_text.strip():
                subject = f"product ({context_text.strip()})"
            return [template.format(subject=subject) for template in _POSE_TEMPLATES[:PRODUCT_POSE_COUNT]]

    async def generate_pose_image(
        self,
        face_image: ModelImage,
        product_image: ModelImage,
        pose_instruction: str,
        background_text: str,
    ) -> str:
        with EngineCallTimer("product_pose", self.name):
            face = ImageOps.fit(_decode(face_image, "face").convert("RGB"), PREVIEW_SIZE)
            product = _decode(product_image, "product")
            product.thumbnail((PREVIEW_SIZE[0] // 2, PREVIEW_SIZE[1] // 2))
            face.paste(product, (PREVIEW_SIZE[0] - product.width - 16, 16), product)
            return self._render(face, [pose_instruction, f"Background: {background_text}"])

    async def generate_base_mockup(self, prompt_text: str) -> str:
        with EngineCallTimer("base_mockup", self.name):
            canvas = Image.new("RGB", PREVIEW_SIZE, _color_for(prompt_text))
            details = [line.strip("- ").strip() for line in prompt_text.splitlines()[1:5]]
            return self._render(canvas, ["Blank Mockup"] + details)

    async def apply_design(
        self,
        base_image: ModelImage,
        design_image: ModelImage,
        instruction_text: str,
    ) -> str:
        with EngineCallTimer("apply_design", self.name):
            base = ImageOps.fit(_decode(base_image, "base").convert("RGB"), PREVIEW_SIZE)
            design = _decode(design_image, "design")
            design.thumbnail((PREVIEW_SIZE[0] * 2 // 5, PREVIEW_SIZE[1] * 2 // 5))
            offset = ((base.width - design.width) // 2, (base.height - design.height) // 3)
            base.paste(design, offset, design)
            logger.debug("Placeholder design composite at %s", offset)
            return _encode(base)
