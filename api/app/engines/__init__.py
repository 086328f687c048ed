"""
Generation engine adapters for the studio orchestrator.

``gemini`` calls the Google Gemini image models; ``placeholder`` renders
labelled previews locally so the service runs without an API key.
"""

from __future__ import annotations

import logging
from typing import Optional

from .base import GenerationEngine

logger = logging.getLogger(__name__)

ENGINE_PLACEHOLDER = "placeholder"
ENGINE_GEMINI = "gemini"

__all__ = ["ENGINE_GEMINI", "ENGINE_PLACEHOLDER", "GenerationEngine", "create_engine"]


def create_engine(engine_mode: Optional[str] = None) -> GenerationEngine:
    from .. import config

    mode = (engine_mode or config.ENGINE_MODE or ENGINE_PLACEHOLDER).lower()
    if mode not in {ENGINE_PLACEHOLDER, ENGINE_GEMINI}:
        logger.warning("Unsupported STUDIO_ENGINE %s; falling back to placeholder.", mode)
        mode = ENGINE_PLACEHOLDER
    if mode == ENGINE_GEMINI and not config.GEMINI_API_KEY:
        logger.warning("GEMINI_API_KEY not set; falling back to placeholder engine.")
        mode = ENGINE_PLACEHOLDER

    if mode == ENGINE_GEMINI:
        from .gemini_adapter import GeminiEngine

        return GeminiEngine(
            api_key=config.GEMINI_API_KEY,
            image_model=config.GEMINI_IMAGE_MODEL,
            text_model=config.GEMINI_TEXT_MODEL,
            max_attempts=config.GEMINI_MAX_ATTEMPTS,
            retry_backoff_seconds=config.GEMINI_RETRY_BACKOFF_SECONDS,
        )

    from .placeholder import PlaceholderEngine

    return PlaceholderEngine()
