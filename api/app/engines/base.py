from __future__ import annotations

import abc
from typing import List

from ..jobs import ModelImage


class GenerationEngine(abc.ABC):
    """Remote image-generation collaborator.

    Image operations return the generated picture as base64 text. Every
    failure is raised as :class:`~api.app.errors.EngineError`.
    """

    name = "engine"

    @abc.abstractmethod
    async def generate_variation(
        self,
        source_image: ModelImage,
        pose_instruction: str,
        style_text: str,
        background_text: str,
    ) -> str:
        ...

    @abc.abstractmethod
    async def generate_pose_prompts(self, product_image: ModelImage, context_text: str) -> List[str]:
        ...

    @abc.abstractmethod
    async def generate_pose_image(
        self,
        face_image: ModelImage,
        product_image: ModelImage,
        pose_instruction: str,
        background_text: str,
    ) -> str:
        ...

    @abc.abstractmethod
    async def generate_base_mockup(self, prompt_text: str) -> str:
        ...

    @abc.abstractmethod
    async def apply_design(
        self,
        base_image: ModelImage,
        design_image: ModelImage,
        instruction_text: str,
    ) -> str:
        ...
