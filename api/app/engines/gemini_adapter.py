from __future__ import annotations

import asyncio
import base64
import json
import logging
import re
from typing import Any, List, Optional

from google import genai
from google.genai import types

from .. import prompts
from ..errors import EngineError
from ..jobs import ModelImage
from ..metrics import EngineCallTimer
from ..presets import PRODUCT_POSE_COUNT
from .base import GenerationEngine

logger = logging.getLogger(__name__)

ERROR_PREFIX = "Gemini API Error: "

_POSES_SCHEMA = types.Schema(
    type=types.Type.OBJECT,
    properties={
        "poses": types.Schema(
            type=types.Type.ARRAY,
            items=types.Schema(
                type=types.Type.STRING,
                description="A creative pose description for a model with the product.",
            ),
        ),
    },
    required=["poses"],
)


def _image_part(image: ModelImage) -> types.Part:
    return types.Part.from_bytes(data=base64.b64decode(image.data), mime_type=image.mime_type)


def _is_retryable(exc: Exception) -> bool:
    text = str(exc)
    return getattr(exc, "code", None) == 503 or "503" in text or "UNAVAILABLE" in text


def _api_error(exc: Exception, context: str) -> EngineError:
    logger.error("%s %s", context, exc)
    message = str(exc) or exc.__class__.__name__
    if message.startswith(ERROR_PREFIX):
        return EngineError(message)
    return EngineError(f"{ERROR_PREFIX}{message}")


def _parse_json_response(raw_text: str) -> Any:
    """Parse JSON from model response, stripping markdown fences if present."""
    raw_text = raw_text.strip()
    if raw_text.startswith("```"):
        raw_text = re.sub(r"^```(?:json)?\s*", "", raw_text)
        raw_text = re.sub(r"\s*```$", "", raw_text)
    return json.loads(raw_text)


def extract_image_data(response: Any) -> Optional[str]:
    """Return the first inline image part of a response as base64 text."""
    candidates = getattr(response, "candidates", None) or []
    if not candidates or candidates[0].content is None:
        return None
    for part in candidates[0].content.parts or []:
        inline = getattr(part, "inline_data", None)
        if inline is None or inline.data is None:
            continue
        if isinstance(inline.data, (bytes, bytearray)):
            return base64.b64encode(inline.data).decode("ascii")
        return str(inline.data)
    return None


def parse_pose_list(raw_text: Optional[str]) -> List[str]:
    if not raw_text:
        raise EngineError(f"{ERROR_PREFIX}The response did not contain any pose descriptions.")
    try:
        parsed = _parse_json_response(raw_text)
    except json.JSONDecodeError as exc:
        raise EngineError(f"{ERROR_PREFIX}Malformed pose list: {exc}") from exc
    poses = parsed.get("poses") if isinstance(parsed, dict) else None
    if not isinstance(poses, list):
        raise EngineError(f"{ERROR_PREFIX}The response did not contain a pose list.")
    return [str(pose).strip() for pose in poses if str(pose).strip()]


class GeminiEngine(GenerationEngine):
    """Gemini image models through the google-genai async client."""

    name = "gemini"

    def __init__(
        self,
        *,
        api_key: Optional[str] = None,
        image_model: str = "gemini-2.5-flash-image",
        text_model: str = "gemini-2.5-flash",
        max_attempts: int = 3,
        retry_backoff_seconds: float = 10.0,
        client: Optional[genai.Client] = None,
    ) -> None:
        self.api_key = api_key
        self.image_model = image_model
        self.text_model = text_model
        self.max_attempts = max(1, max_attempts)
        self.retry_backoff_seconds = retry_backoff_seconds
        self._client = client

    def _get_client(self) -> genai.Client:
        if self._client is None:
            if not self.api_key:
                raise EngineError(f"{ERROR_PREFIX}GEMINI_API_KEY is not configured.")
            self._client = genai.Client(api_key=self.api_key)
        return self._client

    async def _call(self, operation: str, *, model: str, contents: list, config: types.GenerateContentConfig):
        client = self._get_client()
        for attempt in range(1, self.max_attempts + 1):
            try:
                return await client.aio.models.generate_content(
                    model=model,
                    contents=contents,
                    config=config,
                )
            except Exception as exc:  # pylint: disable=broad-except
                if attempt >= self.max_attempts or not _is_retryable(exc):
                    raise
                wait = self.retry_backoff_seconds * attempt
                logger.warning(
                    "%s: Gemini unavailable (attempt %d/%d); retrying in %.1fs.",
                    operation,
                    attempt,
                    self.max_attempts,
                    wait,
                )
                await asyncio.sleep(wait)

    async def _generate_image(self, operation: str, contents: list, context: str) -> str:
        config = types.GenerateContentConfig(response_modalities=["IMAGE"])
        with EngineCallTimer(operation, self.name):
            try:
                response = await self._call(
                    operation, model=self.image_model, contents=contents, config=config
                )
                data = extract_image_data(response)
                if data is None:
                    raise EngineError(f"{ERROR_PREFIX}No image data found in the API response.")
                return data
            except EngineError as exc:
                logger.error("%s %s", context, exc)
                raise
            except Exception as exc:  # pylint: disable=broad-except
                raise _api_error(exc, context) from exc

    async def generate_variation(
        self,
        source_image: ModelImage,
        pose_instruction: str,
        style_text: str,
        background_text: str,
    ) -> str:
        prompt = prompts.variation_prompt(pose_instruction, style_text, background_text)
        return await self._generate_image(
            "variation",
            [_image_part(source_image), prompt],
            "Error calling Gemini API for image variation:",
        )

    async def generate_pose_prompts(self, product_image: ModelImage, context_text: str) -> List[str]:
        config = types.GenerateContentConfig(
            response_mime_type="application/json",
            response_schema=_POSES_SCHEMA,
        )
        contents = [
            _image_part(product_image),
            prompts.pose_prompts_request(context_text, PRODUCT_POSE_COUNT),
        ]
        with EngineCallTimer("pose_prompts", self.name):
            try:
                response = await self._call(
                    "pose_prompts", model=self.text_model, contents=contents, config=config
                )
                return parse_pose_list(getattr(response, "text", None))
            except EngineError as exc:
                logger.error("Error calling Gemini API for product prompts: %s", exc)
                raise
            except Exception as exc:  # pylint: disable=broad-except
                raise _api_error(exc, "Error calling Gemini API for product prompts:") from exc

    async def generate_pose_image(
        self,
        face_image: ModelImage,
        product_image: ModelImage,
        pose_instruction: str,
        background_text: str,
    ) -> str:
        prompt = prompts.product_pose_prompt(pose_instruction, background_text)
        return await self._generate_image(
            "product_pose",
            [_image_part(face_image), _image_part(product_image), prompt],
            "Error calling Gemini API for product pose:",
        )

    async def generate_base_mockup(self, prompt_text: str) -> str:
        return await self._generate_image(
            "base_mockup",
            [prompt_text],
            "Error calling Gemini API for base mockup:",
        )

    async def apply_design(
        self,
        base_image: ModelImage,
        design_image: ModelImage,
        instruction_text: str,
    ) -> str:
        return await self._generate_image(
            "apply_design",
            [_image_part(base_image), _image_part(design_image), instruction_text],
            "Error calling Gemini API for applying design:",
        )
