from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Awaitable, Callable, List, Optional, Sequence

from . import config, prompts
from .engines import GenerationEngine
from .errors import EngineError, StudioValidationError
from .jobs import (
    BaseMockupJob,
    DesignJob,
    DownloadEntry,
    GenerationItem,
    ItemStatus,
    JobState,
    MockupStage,
    Mode,
    ModelImage,
    PortraitJob,
    ProductPoseJob,
    StudioSnapshot,
    download_filename,
)
from .metrics import increment, observe_latency
from .options import OptionValue, choose
from .presets import DEFAULT_PRODUCT_COLOR, POSES, PRODUCT_POSE_COUNT

logger = logging.getLogger(__name__)

UPLOADED_BASE_LABEL = "Product"


@dataclass
class ItemTask:
    label: str
    call: Callable[[], Awaitable[str]]


@dataclass
class JobPlan:
    """Ordered work for one job, consumed by :meth:`GenerationOrchestrator.run`.

    ``prepare`` runs first when the item list is only known after a remote
    call; its failure aborts the whole job.
    """

    job_id: str
    mode: Mode
    tasks: List[ItemTask] = field(default_factory=list)
    prepare: Optional[Callable[[], Awaitable[List[ItemTask]]]] = None
    item_error_prefix: str = ""
    job_error_prefix: str = ""


def _new_job_id() -> str:
    return uuid.uuid4().hex


class GenerationOrchestrator:
    """Owns the studio state and drives the three generation workflows.

    All engine calls of a job run one at a time. Results are matched to items by
    label, and only while the job that issued them is still the active one.
    """

    def __init__(self, engine: GenerationEngine, *, download_stagger_ms: Optional[int] = None) -> None:
        self.engine = engine
        self.download_stagger_ms = (
            config.DOWNLOAD_STAGGER_MS if download_stagger_ms is None else download_stagger_ms
        )
        self._state = JobState()

    # ----------------------
    # Observation
    # ----------------------
    def snapshot(self) -> StudioSnapshot:
        state = self._state
        return StudioSnapshot(
            mode=state.mode,
            job_id=state.job_id,
            running=state.running,
            error=state.error,
            items=tuple(state.items),
            stage=state.stage,
            has_base_image=state.base_image is not None,
        )

    def download_manifest(self) -> List[DownloadEntry]:
        successful = [item for item in self._state.items if item.status is ItemStatus.SUCCESS]
        return [
            DownloadEntry(
                label=item.label,
                filename=download_filename(item.label),
                src=item.src or "",
                delay_ms=index * self.download_stagger_ms,
            )
            for index, item in enumerate(successful)
        ]

    # ----------------------
    # Modes
    # ----------------------
    def switch_mode(self, mode: Mode) -> StudioSnapshot:
        previous = self._state
        if previous.running:
            logger.info(
                "Switching to %s while job %s is in flight; its results will be discarded.",
                mode.value,
                previous.job_id,
            )
        self._state = JobState(mode=mode)
        return self.snapshot()

    def _ensure_mode(self, mode: Mode) -> None:
        if self._state.mode is not mode:
            self.switch_mode(mode)

    # ----------------------
    # State mutation
    # ----------------------
    def _invalid(self, message: str) -> StudioValidationError:
        self._state.error = message
        return StudioValidationError(message)

    def _resolve_option(self, option: OptionValue, field_name: str) -> str:
        try:
            return option.resolve(field_name)
        except StudioValidationError as exc:
            raise self._invalid(exc.message) from exc

    def select_option(
        self,
        mode: Mode,
        selection: Optional[str],
        custom_text: Optional[str],
        choices: Sequence[str],
        *,
        field_name: str,
    ) -> OptionValue:
        """Turn a form selection into an option value for a ``mode`` job.

        A rejected selection is recorded as the job error of that mode.
        """
        self._ensure_mode(mode)
        try:
            return choose(selection, custom_text, choices, field=field_name)
        except StudioValidationError as exc:
            raise self._invalid(exc.message) from exc

    def _start_job(self, mode: Mode, labels: List[str]) -> str:
        job_id = _new_job_id()
        self._state.job_id = job_id
        self._state.running = True
        self._state.error = None
        self._state.items = [GenerationItem(label=label) for label in labels]
        logger.info("Starting %s job %s with %d items", mode.value, job_id, len(labels))
        return job_id

    def _is_active(self, job_id: str) -> bool:
        return self._state.job_id == job_id

    def _resolve_item(self, job_id: str, label: str, payload: Optional[str]) -> bool:
        if not self._is_active(job_id):
            logger.info("Discarding stale result for %r from job %s", label, job_id)
            return False
        items = list(self._state.items)
        for index, item in enumerate(items):
            if item.label == label and item.pending:
                items[index] = item.succeed(payload) if payload is not None else item.fail()
                self._state.items = items
                return True
        logger.warning("No pending item labelled %r in job %s; result ignored.", label, job_id)
        return False

    def _abort(self, job_id: str, message: str) -> None:
        if not self._is_active(job_id):
            logger.info("Discarding failure of superseded job %s: %s", job_id, message)
            return
        logger.error("Job %s failed: %s", job_id, message)
        self._state.items = []
        self._state.error = message

    def _finish(self, job_id: str) -> None:
        if self._is_active(job_id):
            self._state.running = False

    # ----------------------
    # Coordinating routine
    # ----------------------
    async def run(self, plan: JobPlan) -> StudioSnapshot:
        start_time = time.perf_counter()
        try:
            await self._execute(plan)
        finally:
            self._finish(plan.job_id)
            observe_latency("job_seconds", f"mode={plan.mode.value}", time.perf_counter() - start_time)
        # Built after _finish so an aborted job never reports itself as running.
        return self.snapshot()

    async def _execute(self, plan: JobPlan) -> None:
        tasks = plan.tasks
        if plan.prepare is not None:
            try:
                tasks = await plan.prepare()
            except Exception as exc:  # pylint: disable=broad-except
                self._abort(plan.job_id, f"{plan.job_error_prefix}{exc}")
                increment("jobs_total", f"mode={plan.mode.value} outcome=aborted")
                return
            if not self._is_active(plan.job_id):
                return
            self._state.items = [GenerationItem(label=task.label) for task in tasks]
        await self._run_items(plan, tasks)
        increment("jobs_total", f"mode={plan.mode.value} outcome=completed")

    async def _run_items(self, plan: JobPlan, tasks: List[ItemTask]) -> None:
        for position, task in enumerate(tasks):
            if not self._is_active(plan.job_id):
                logger.info(
                    "Job %s superseded; skipping %d remaining items", plan.job_id, len(tasks) - position
                )
                return
            try:
                payload = await task.call()
            except Exception as exc:  # pylint: disable=broad-except
                message = f"{plan.item_error_prefix}{exc}"
                logger.warning("Generation failed for %r in job %s: %s", task.label, plan.job_id, exc)
                if self._resolve_item(plan.job_id, task.label, None):
                    self._state.error = message
            else:
                self._resolve_item(plan.job_id, task.label, payload)

    # ----------------------
    # Workflow A: portrait poses
    # ----------------------
    def begin_portraits(self, job: PortraitJob) -> JobPlan:
        self._ensure_mode(Mode.PORTRAIT)
        if job.image is None:
            raise self._invalid("Please upload a model image first.")
        background = self._resolve_option(job.background, "background")
        image = job.image
        style = job.style.strip()

        def variation(instruction: str) -> Callable[[], Awaitable[str]]:
            return lambda: self.engine.generate_variation(image, instruction, style, background)

        job_id = self._start_job(Mode.PORTRAIT, [pose.label for pose in POSES])
        tasks = [ItemTask(label=pose.label, call=variation(pose.prompt)) for pose in POSES]
        return JobPlan(job_id=job_id, mode=Mode.PORTRAIT, tasks=tasks)

    async def generate_portraits(self, job: PortraitJob) -> StudioSnapshot:
        return await self.run(self.begin_portraits(job))

    # ----------------------
    # Workflow B: product poses
    # ----------------------
    def begin_product_poses(self, job: ProductPoseJob) -> JobPlan:
        self._ensure_mode(Mode.PRODUCT)
        if job.face_image is None or job.product_image is None:
            raise self._invalid("Please upload both a face image and a product image.")
        background = self._resolve_option(job.background, "background")
        face, product = job.face_image, job.product_image
        context = job.context.strip()

        def pose_image(description: str) -> Callable[[], Awaitable[str]]:
            return lambda: self.engine.generate_pose_image(face, product, description, background)

        async def prepare() -> List[ItemTask]:
            descriptions = await self.engine.generate_pose_prompts(product, context)
            if len(descriptions) < PRODUCT_POSE_COUNT:
                raise StudioValidationError("The AI could not produce the expected set of poses.")
            chosen = descriptions[:PRODUCT_POSE_COUNT]
            return [ItemTask(label=description, call=pose_image(description)) for description in chosen]

        placeholders = [f"Pose {index + 1}" for index in range(PRODUCT_POSE_COUNT)]
        job_id = self._start_job(Mode.PRODUCT, placeholders)
        return JobPlan(
            job_id=job_id,
            mode=Mode.PRODUCT,
            prepare=prepare,
            job_error_prefix="Generation failed: ",
        )

    async def generate_product_poses(self, job: ProductPoseJob) -> StudioSnapshot:
        return await self.run(self.begin_product_poses(job))

    # ----------------------
    # Workflow C: mockups
    # ----------------------
    def _reset_mockup(self) -> None:
        state = self._state
        state.stage = MockupStage.GENERATE_BASE
        state.base_image = None
        state.base_label = UPLOADED_BASE_LABEL
        state.items = []
        state.error = None
        state.running = False
        # Any in-flight mockup call now belongs to a superseded job.
        state.job_id = _new_job_id()

    async def generate_base_mockup(self, job: BaseMockupJob) -> StudioSnapshot:
        self._ensure_mode(Mode.MOCKUP)
        self._reset_mockup()
        template = self._resolve_option(job.template, "template")
        scene = self._resolve_option(job.scene, "scene")
        lighting = self._resolve_option(job.lighting, "lighting")
        color = job.color.strip() or DEFAULT_PRODUCT_COLOR
        prompt_text = prompts.base_mockup_prompt(template, color, scene, lighting)

        job_id = self._start_job(Mode.MOCKUP, [])
        try:
            payload = await self.engine.generate_base_mockup(prompt_text)
        except Exception as exc:  # pylint: disable=broad-except
            message = f"Template generation failed: {exc}"
            if not self._is_active(job_id):
                logger.info("Discarding base mockup failure of superseded job %s", job_id)
                return self.snapshot()
            self._abort(job_id, message)
            self._finish(job_id)
            raise EngineError(message) from exc

        if not self._is_active(job_id):
            logger.info("Discarding stale base mockup from job %s", job_id)
            return self.snapshot()
        self._state.base_image = ModelImage(data=payload, mime_type="image/png")
        self._state.base_label = template
        self._state.stage = MockupStage.APPLY_DESIGN
        self._finish(job_id)
        return self.snapshot()

    def use_base_image(self, image: Optional[ModelImage]) -> StudioSnapshot:
        self._ensure_mode(Mode.MOCKUP)
        if self._state.stage is not MockupStage.GENERATE_BASE:
            raise self._invalid(
                "A base template is already in use. Go back to the template step to replace it."
            )
        if image is None:
            raise self._invalid("Please upload a base template image.")
        self._reset_mockup()
        self._state.base_image = image
        self._state.stage = MockupStage.APPLY_DESIGN
        return self.snapshot()

    def back_to_base(self) -> StudioSnapshot:
        self._ensure_mode(Mode.MOCKUP)
        self._reset_mockup()
        return self.snapshot()

    def begin_design(self, job: DesignJob) -> JobPlan:
        self._ensure_mode(Mode.MOCKUP)
        if job.design_image is None:
            raise self._invalid("Please upload your design image first.")
        if self._state.base_image is None:
            raise self._invalid("No base mockup template found. Generate or upload a template first.")
        placement = self._resolve_option(job.placement, "placement")
        size = self._resolve_option(job.size, "size")
        instruction = prompts.design_instruction(placement, size, job.remove_background)
        base, design = self._state.base_image, job.design_image
        label = f"{self._state.base_label} Mockup"

        job_id = self._start_job(Mode.MOCKUP, [label])
        task = ItemTask(label=label, call=lambda: self.engine.apply_design(base, design, instruction))
        return JobPlan(
            job_id=job_id,
            mode=Mode.MOCKUP,
            tasks=[task],
            item_error_prefix="Applying the design failed: ",
        )

    async def apply_design(self, job: DesignJob) -> StudioSnapshot:
        return await self.run(self.begin_design(job))
