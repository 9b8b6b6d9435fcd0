"""
Two-phase progress/log playback around one remote generation call.

Phase 1 (startup) emits a fixed list of boot lines on a fast timer while the
remote call is in flight, moving progress toward STARTUP_CEILING. When the
call resolves the startup timer is cancelled, whatever it had emitted stays.
Phase 2 (playback) replays the remote log lines on an even faster timer,
mapping progress from PLAYBACK_FLOOR to PLAYBACK_CEILING, then completes.

Exactly one of COMPLETED, ERROR_STOP or EXCEPTION_STOP ends a mounted run,
and `on_complete` fires only for COMPLETED. `cancel()` is the unmount hook:
it stops both timers and makes the run ignore the remote reply.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Optional, Sequence

from .config import Settings
from .generation import GenerationCollaborator, is_error_result
from .models import DatasetPreview, GenerationResult, TuningConfig, TuningResult

logger = logging.getLogger(__name__)

BOOT_LINE = "System boot sequence initiated."
STARTUP_LINES: tuple[str, ...] = (
    "Initializing secure worker environment...",
    "Allocating GPU/CPU resources...",
    "Loading dataset into memory...",
    "Validating schema compatibility...",
    "Setting up cross-validation strategy...",
    "Importing machine learning libraries...",
    "Establishing connection to optimization engine...",
)
TRANSITION_LINES: tuple[str, ...] = ("Optimization plan generated successfully.", "Starting trials...")
COMPLETION_LINES: tuple[str, ...] = ("Optimization complete.", "Finalizing artifact...")
UNKNOWN_ERROR = "Unknown error occurred."

STARTUP_STEP = 8.0
STARTUP_CEILING = 50.0
PLAYBACK_FLOOR = 55.0
PLAYBACK_CEILING = 98.0
DONE = 100.0

Sleep = Callable[[float], Awaitable[None]]


class PipelineOutcome(str, Enum):
    COMPLETED = "completed"
    ERROR_STOP = "error_stop"
    EXCEPTION_STOP = "exception_stop"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class PipelineSnapshot:
    logs: tuple[str, ...]
    progress: float
    outcome: Optional[PipelineOutcome] = None


class TickingSource:
    """
    Emit `items` one at a time, waiting `interval` before each, like a
    browser setInterval that stops after the last item.
    """

    def __init__(self, items: Sequence[str], interval: float, on_tick: Callable[[int, str], None], *, sleep: Sleep = asyncio.sleep):
        self.items = list(items)
        self.interval = interval
        self.on_tick = on_tick
        self._sleep = sleep
        self.emitted = 0

    async def run(self) -> None:
        for i, item in enumerate(self.items):
            await self._sleep(self.interval)
            self.on_tick(i, item)
            self.emitted += 1


class GenerationPipeline:
    """One pipeline instance corresponds to one mount of the tuning view."""

    def __init__(
        self,
        collaborator: GenerationCollaborator,
        *,
        startup_interval: float = 0.08,
        playback_interval: float = 0.005,
        completion_delay: float = 0.3,
        startup_lines: Sequence[str] = STARTUP_LINES,
        on_update: Optional[Callable[[PipelineSnapshot], None]] = None,
        sleep: Sleep = asyncio.sleep,
    ):
        self.collaborator = collaborator
        self.startup_interval = startup_interval
        self.playback_interval = playback_interval
        self.completion_delay = completion_delay
        self.startup_lines = tuple(startup_lines)
        self.on_update = on_update
        self._sleep = sleep

        self._logs: list[str] = []
        self._progress = 0.0
        self.outcome: Optional[PipelineOutcome] = None
        self.result: Optional[TuningResult] = None
        self._mounted = True
        self._completed = False
        self._task: Optional[asyncio.Task] = None
        self._startup_task: Optional[asyncio.Task] = None
        self._playback_task: Optional[asyncio.Task] = None

    @classmethod
    def from_settings(cls, collaborator: GenerationCollaborator, settings: Settings, **kwargs) -> "GenerationPipeline":
        return cls(
            collaborator,
            startup_interval=settings.startup_interval_s,
            playback_interval=settings.playback_interval_s,
            completion_delay=settings.completion_delay_s,
            **kwargs,
        )

    @property
    def logs(self) -> list[str]:
        return list(self._logs)

    @property
    def progress(self) -> float:
        return self._progress

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def snapshot(self) -> PipelineSnapshot:
        return PipelineSnapshot(logs=tuple(self._logs), progress=self._progress, outcome=self.outcome)

    def start(
        self,
        dataset: DatasetPreview,
        config: TuningConfig,
        on_complete: Callable[[TuningResult], None],
    ) -> asyncio.Task:
        """Start the run, or return the run already started on this mount."""
        if self._task is None:
            self._task = asyncio.ensure_future(self._execute(dataset, config, on_complete))
        return self._task

    async def run(
        self,
        dataset: DatasetPreview,
        config: TuningConfig,
        on_complete: Callable[[TuningResult], None],
    ) -> PipelineOutcome:
        return await self.start(dataset, config, on_complete)

    def cancel(self) -> None:
        """Unmount: stop both timers; a late remote reply will be ignored."""
        self._mounted = False
        for task in (self._startup_task, self._playback_task):
            if task is not None and not task.done():
                task.cancel()

    # -- state updates -------------------------------------------------

    def _publish(self) -> None:
        if self.on_update is not None and self._mounted:
            self.on_update(self.snapshot())

    def _append(self, *lines: str) -> None:
        self._logs.extend(lines)
        self._publish()

    def _set_progress(self, value: float) -> None:
        self._progress = value
        self._publish()

    def _finish(self, outcome: PipelineOutcome) -> PipelineOutcome:
        self.outcome = outcome
        self._publish()
        logger.info("Pipeline finished: %s (log lines=%d, progress=%.0f)", outcome.value, len(self._logs), self._progress)
        return outcome

    def _on_startup_tick(self, _index: int, line: str) -> None:
        self._logs.append(line)
        self._progress = min(self._progress + STARTUP_STEP, STARTUP_CEILING)
        self._publish()

    def _startup_failure(self) -> Optional[BaseException]:
        task = self._startup_task
        if task is None or not task.done() or task.cancelled():
            return None
        return task.exception()

    async def _stop_startup(self) -> None:
        task = self._startup_task
        if task is not None and not task.done():
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)

    # -- phases --------------------------------------------------------

    async def _execute(
        self,
        dataset: DatasetPreview,
        config: TuningConfig,
        on_complete: Callable[[TuningResult], None],
    ) -> PipelineOutcome:
        self._logs = [BOOT_LINE]
        self._progress = 0.0
        self._publish()

        startup = TickingSource(self.startup_lines, self.startup_interval, self._on_startup_tick, sleep=self._sleep)
        self._startup_task = asyncio.ensure_future(startup.run())
        remote = asyncio.ensure_future(self.collaborator.generate(dataset, config))

        # A failing startup tick (e.g. a broken on_update) must surface here,
        # not die silently inside its task.
        pending: set[asyncio.Future] = {remote, self._startup_task}
        while not remote.done():
            _, pending = await asyncio.wait(pending, return_when=asyncio.FIRST_COMPLETED)
            if self._startup_failure() is not None:
                break
        failure = self._startup_failure()
        if failure is not None:
            raise failure
        await self._stop_startup()

        try:
            reply = remote.result()
        except Exception as exc:
            if not self._mounted:
                return PipelineOutcome.CANCELLED
            logger.warning("Generation raised: %r", exc)
            self._append(f"Critical Error: {str(exc) or UNKNOWN_ERROR}")
            return self._finish(PipelineOutcome.EXCEPTION_STOP)

        if not self._mounted:
            return PipelineOutcome.CANCELLED
        logger.info("Remote call resolved after %d startup line(s)", startup.emitted)

        if is_error_result(reply):
            self._logs.extend(reply.logs)
            self._set_progress(DONE)
            return self._finish(PipelineOutcome.ERROR_STOP)

        return await self._playback(reply, on_complete)

    async def _playback(self, reply: GenerationResult, on_complete: Callable[[TuningResult], None]) -> PipelineOutcome:
        self._logs.extend(TRANSITION_LINES)
        self._set_progress(max(self._progress, PLAYBACK_FLOOR))

        total = len(reply.logs)

        def _tick(index: int, line: str) -> None:
            self._logs.append(line)
            self._progress = min(PLAYBACK_FLOOR + (index + 1) / total * (PLAYBACK_CEILING - PLAYBACK_FLOOR), PLAYBACK_CEILING)
            self._publish()

        source = TickingSource(reply.logs, self.playback_interval, _tick, sleep=self._sleep)
        self._playback_task = asyncio.ensure_future(source.run())
        try:
            await self._playback_task
        except asyncio.CancelledError:
            if self._mounted:
                raise
            return PipelineOutcome.CANCELLED
        if not self._mounted:
            return PipelineOutcome.CANCELLED

        self._progress = DONE
        self._append(*COMPLETION_LINES)
        await self._sleep(self.completion_delay)
        if not self._mounted:
            return PipelineOutcome.CANCELLED

        self.result = TuningResult(
            best_params=reply.best_params,
            best_score=reply.best_score,
            metric=reply.metric,
            python_script=reply.script,
            execution_log=list(self._logs),
        )
        outcome = self._finish(PipelineOutcome.COMPLETED)
        if not self._completed:
            self._completed = True
            on_complete(self.result)
        return outcome
