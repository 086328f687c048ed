from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import List, Optional, Tuple

from .options import OptionValue

FAILURE_MARKER = "error"
DATA_URL_PREFIX = "data:image/png;base64,"


class Mode(str, Enum):
    PORTRAIT = "portrait"
    PRODUCT = "product"
    MOCKUP = "mockup"


class MockupStage(str, Enum):
    GENERATE_BASE = "generateBase"
    APPLY_DESIGN = "applyDesign"


class ItemStatus(str, Enum):
    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"


@dataclass(frozen=True)
class ModelImage:
    """An uploaded or generated image as base64 text plus its media type."""

    data: str
    mime_type: str


@dataclass(frozen=True)
class GenerationItem:
    label: str
    status: ItemStatus = ItemStatus.PENDING
    payload: Optional[str] = None

    @property
    def pending(self) -> bool:
        return self.status is ItemStatus.PENDING

    @property
    def terminal(self) -> bool:
        return self.status is not ItemStatus.PENDING

    @property
    def src(self) -> Optional[str]:
        if self.status is ItemStatus.SUCCESS:
            return f"{DATA_URL_PREFIX}{self.payload}"
        if self.status is ItemStatus.FAILED:
            return FAILURE_MARKER
        return None

    def succeed(self, payload: str) -> "GenerationItem":
        return replace(self, status=ItemStatus.SUCCESS, payload=payload)

    def fail(self) -> "GenerationItem":
        return replace(self, status=ItemStatus.FAILED, payload=None)


@dataclass(frozen=True)
class PortraitJob:
    image: Optional[ModelImage]
    background: OptionValue
    style: str = ""


@dataclass(frozen=True)
class ProductPoseJob:
    face_image: Optional[ModelImage]
    product_image: Optional[ModelImage]
    background: OptionValue
    context: str = ""


@dataclass(frozen=True)
class BaseMockupJob:
    template: OptionValue
    scene: OptionValue
    lighting: OptionValue
    color: str = ""


@dataclass(frozen=True)
class DesignJob:
    design_image: Optional[ModelImage]
    placement: OptionValue
    size: OptionValue
    remove_background: bool = True


@dataclass
class JobState:
    """Mutable state owned by the orchestrator for the active job."""

    mode: Mode = Mode.PORTRAIT
    job_id: Optional[str] = None
    running: bool = False
    error: Optional[str] = None
    items: List[GenerationItem] = field(default_factory=list)
    stage: MockupStage = MockupStage.GENERATE_BASE
    base_image: Optional[ModelImage] = None
    base_label: str = "Product"


@dataclass(frozen=True)
class StudioSnapshot:
    mode: Mode
    job_id: Optional[str]
    running: bool
    error: Optional[str]
    items: Tuple[GenerationItem, ...]
    stage: MockupStage
    has_base_image: bool


@dataclass(frozen=True)
class DownloadEntry:
    label: str
    filename: str
    src: str
    delay_ms: int


def download_filename(label: str) -> str:
    slug = re.sub(r"[\s/\\]+", "-", label.lower())
    return f"{slug}.png"
