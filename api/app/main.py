from __future__ import annotations

import logging
import os
import time
from typing import Optional

from fastapi import BackgroundTasks, Depends, FastAPI, File, Form, Request, UploadFile, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import (
    APP_VERSION,
    CORS_ALLOW_ORIGIN_REGEX,
    CORS_ALLOW_ORIGINS,
    ENGINE_MODE,
    LOG_LEVEL,
)
from .engines import create_engine
from .errors import EngineError, StudioValidationError, UploadError
from .jobs import BaseMockupJob, DesignJob, Mode, ModelImage, PortraitJob, ProductPoseJob
from .metrics import increment, observe_latency, snapshot
from .orchestrator import GenerationOrchestrator
from .presets import (
    BACKGROUND_OPTIONS,
    DEFAULT_BACKGROUND,
    DESIGN_SIZE_OPTIONS,
    LIGHTING_OPTIONS,
    MOCKUP_TEMPLATES,
    PLACEMENT_OPTIONS,
    SCENE_PRESETS,
    catalog,
)
from .schemas import ModeRequest, build_downloads_response, build_state_response
from .uploads import decode_upload

logger = logging.getLogger(__name__)
logging.getLogger("api.app").setLevel(LOG_LEVEL)


app = FastAPI(
    title="Pose Studio API",
    version=APP_VERSION,
    description="Pose variations, product poses and product mockups via a generative image engine.",
)

if CORS_ALLOW_ORIGIN_REGEX is None and CORS_ALLOW_ORIGINS == ["*"]:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
else:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ALLOW_ORIGINS,
        allow_origin_regex=CORS_ALLOW_ORIGIN_REGEX,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


# Orchestrator singleton; the studio state is per process.
_ORCHESTRATOR: Optional[GenerationOrchestrator] = None


def get_orchestrator() -> GenerationOrchestrator:
    global _ORCHESTRATOR
    if _ORCHESTRATOR is None:
        engine = create_engine(ENGINE_MODE)
        logger.info("Studio orchestrator using %s engine", engine.name)
        _ORCHESTRATOR = GenerationOrchestrator(engine)
    return _ORCHESTRATOR


@app.exception_handler(StudioValidationError)
@app.exception_handler(UploadError)
async def handle_bad_request(request: Request, exc: Exception):
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": str(exc)})


@app.exception_handler(EngineError)
async def handle_engine_error(request: Request, exc: EngineError):
    return JSONResponse(status_code=status.HTTP_502_BAD_GATEWAY, content={"detail": exc.message})


@app.middleware("http")
async def log_and_measure_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    duration = time.perf_counter() - start
    label = f"{request.method} {request.url.path}"
    increment("requests_total", label)
    observe_latency("http_request_seconds", label, duration)
    response.headers["X-Process-Time"] = f"{duration:.3f}s"
    logger.info("%s %s -> %s (%.3fs)", request.method, request.url.path, response.status_code, duration)
    return response


async def _read_image(upload: Optional[UploadFile], field: str) -> Optional[ModelImage]:
    if upload is None:
        return None
    return decode_upload(await upload.read(), upload.content_type, field=field)


def _state_payload(orchestrator: GenerationOrchestrator) -> dict:
    return build_state_response(orchestrator.snapshot()).model_dump(mode="json")


@app.get("/healthz")
async def healthz():
    return {"ok": True}


@app.get("/metrics")
async def metrics():
    return JSONResponse(status_code=status.HTTP_200_OK, content=snapshot())


@app.get("/presets")
async def presets():
    return catalog()


@app.get("/studio/state")
async def studio_state(orchestrator: GenerationOrchestrator = Depends(get_orchestrator)):
    return JSONResponse(status_code=status.HTTP_200_OK, content=_state_payload(orchestrator))


@app.get("/studio/downloads")
async def studio_downloads(orchestrator: GenerationOrchestrator = Depends(get_orchestrator)):
    payload = build_downloads_response(orchestrator.download_manifest())
    return JSONResponse(status_code=status.HTTP_200_OK, content=payload.model_dump())


@app.post("/studio/mode")
async def studio_mode(
    request: ModeRequest,
    orchestrator: GenerationOrchestrator = Depends(get_orchestrator),
):
    orchestrator.switch_mode(request.mode)
    return JSONResponse(status_code=status.HTTP_200_OK, content=_state_payload(orchestrator))


@app.post("/studio/portrait")
async def studio_portrait(
    background_tasks: BackgroundTasks,
    photo: Optional[UploadFile] = File(default=None),
    style: str = Form(default=""),
    background: str = Form(default=DEFAULT_BACKGROUND),
    custom_background: str = Form(default=""),
    orchestrator: GenerationOrchestrator = Depends(get_orchestrator),
):
    job = PortraitJob(
        image=await _read_image(photo, "model"),
        background=orchestrator.select_option(
            Mode.PORTRAIT, background, custom_background, BACKGROUND_OPTIONS, field_name="background"
        ),
        style=style,
    )
    plan = orchestrator.begin_portraits(job)
    background_tasks.add_task(orchestrator.run, plan)
    return JSONResponse(status_code=status.HTTP_202_ACCEPTED, content=_state_payload(orchestrator))


@app.post("/studio/product")
async def studio_product(
    background_tasks: BackgroundTasks,
    face: Optional[UploadFile] = File(default=None),
    product: Optional[UploadFile] = File(default=None),
    context: str = Form(default=""),
    background: str = Form(default=DEFAULT_BACKGROUND),
    custom_background: str = Form(default=""),
    orchestrator: GenerationOrchestrator = Depends(get_orchestrator),
):
    job = ProductPoseJob(
        face_image=await _read_image(face, "face"),
        product_image=await _read_image(product, "product"),
        background=orchestrator.select_option(
            Mode.PRODUCT, background, custom_background, BACKGROUND_OPTIONS, field_name="background"
        ),
        context=context,
    )
    plan = orchestrator.begin_product_poses(job)
    background_tasks.add_task(orchestrator.run, plan)
    return JSONResponse(status_code=status.HTTP_202_ACCEPTED, content=_state_payload(orchestrator))


@app.post("/studio/mockup/base")
async def studio_mockup_base(
    template: str = Form(default=MOCKUP_TEMPLATES[0]),
    custom_template: str = Form(default=""),
    scene: str = Form(default=SCENE_PRESETS[0]),
    custom_scene: str = Form(default=""),
    lighting: str = Form(default=LIGHTING_OPTIONS[0]),
    custom_lighting: str = Form(default=""),
    color: str = Form(default=""),
    orchestrator: GenerationOrchestrator = Depends(get_orchestrator),
):
    select = orchestrator.select_option
    job = BaseMockupJob(
        template=select(Mode.MOCKUP, template, custom_template, MOCKUP_TEMPLATES, field_name="template"),
        scene=select(Mode.MOCKUP, scene, custom_scene, SCENE_PRESETS, field_name="scene"),
        lighting=select(Mode.MOCKUP, lighting, custom_lighting, LIGHTING_OPTIONS, field_name="lighting"),
        color=color,
    )
    await orchestrator.generate_base_mockup(job)
    return JSONResponse(status_code=status.HTTP_200_OK, content=_state_payload(orchestrator))


@app.post("/studio/mockup/base/upload")
async def studio_mockup_base_upload(
    base: Optional[UploadFile] = File(default=None),
    orchestrator: GenerationOrchestrator = Depends(get_orchestrator),
):
    orchestrator.use_base_image(await _read_image(base, "base template"))
    return JSONResponse(status_code=status.HTTP_200_OK, content=_state_payload(orchestrator))


@app.post("/studio/mockup/design")
async def studio_mockup_design(
    background_tasks: BackgroundTasks,
    design: Optional[UploadFile] = File(default=None),
    placement: str = Form(default=PLACEMENT_OPTIONS[0]),
    custom_placement: str = Form(default=""),
    size: str = Form(default=DESIGN_SIZE_OPTIONS[1]),
    custom_size: str = Form(default=""),
    remove_background: bool = Form(default=True),
    orchestrator: GenerationOrchestrator = Depends(get_orchestrator),
):
    select = orchestrator.select_option
    job = DesignJob(
        design_image=await _read_image(design, "design"),
        placement=select(Mode.MOCKUP, placement, custom_placement, PLACEMENT_OPTIONS, field_name="placement"),
        size=select(Mode.MOCKUP, size, custom_size, DESIGN_SIZE_OPTIONS, field_name="size"),
        remove_background=remove_background,
    )
    plan = orchestrator.begin_design(job)
    background_tasks.add_task(orchestrator.run, plan)
    return JSONResponse(status_code=status.HTTP_202_ACCEPTED, content=_state_payload(orchestrator))


@app.post("/studio/mockup/reset")
async def studio_mockup_reset(orchestrator: GenerationOrchestrator = Depends(get_orchestrator)):
    orchestrator.back_to_base()
    return JSONResponse(status_code=status.HTTP_200_OK, content=_state_payload(orchestrator))


if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    uvicorn.run(app, host="0.0.0.0", port=int(os.environ.get("PORT", "8000")))
