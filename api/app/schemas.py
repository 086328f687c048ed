from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel

from .jobs import DownloadEntry, GenerationItem, MockupStage, Mode, StudioSnapshot


class ModeRequest(BaseModel):
    mode: Mode


class ItemView(BaseModel):
    label: str
    status: str
    loading: bool
    src: Optional[str] = None


class StudioStateResponse(BaseModel):
    ok: bool = True
    mode: Mode
    job_id: Optional[str] = None
    running: bool
    error: Optional[str] = None
    stage: MockupStage
    has_base_image: bool
    count: int
    items: List[ItemView]


class DownloadView(BaseModel):
    label: str
    filename: str
    src: str
    delay_ms: int


class DownloadsResponse(BaseModel):
    ok: bool = True
    count: int
    downloads: List[DownloadView]


def item_view(item: GenerationItem) -> ItemView:
    return ItemView(label=item.label, status=item.status.value, loading=item.pending, src=item.src)


def build_state_response(snapshot: StudioSnapshot) -> StudioStateResponse:
    return StudioStateResponse(
        mode=snapshot.mode,
        job_id=snapshot.job_id,
        running=snapshot.running,
        error=snapshot.error,
        stage=snapshot.stage,
        has_base_image=snapshot.has_base_image,
        count=len(snapshot.items),
        items=[item_view(item) for item in snapshot.items],
    )


def build_downloads_response(entries: List[DownloadEntry]) -> DownloadsResponse:
    return DownloadsResponse(
        count=len(entries),
        downloads=[
            DownloadView(label=e.label, filename=e.filename, src=e.src, delay_ms=e.delay_ms)
            for e in entries
        ],
    )
