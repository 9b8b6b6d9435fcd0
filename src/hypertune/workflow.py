"""
The top-level state machine for one browser session.

WorkflowController owns the current WorkflowStep together with the dataset,
config and result slots. Every change goes through `_move`, which checks the
transition table and replaces the whole WorkflowState at once, so a renderer
never observes a half-updated set of slots.

The access gate is checked only at the UPLOAD boundary: a user who runs out
of free trials mid-experiment may finish it, and is sent to the gate on the
next reset instead.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Callable, Optional

from .access import is_locked
from .config import Settings
from .errors import WorkflowError
from .models import DatasetPreview, Session, TuningConfig, TuningResult, WorkflowStep
from .store import USAGE_KEY, SessionStore, read_usage
from .utils import now_ms

logger = logging.getLogger(__name__)

S = WorkflowStep

TRANSITIONS: dict[WorkflowStep, frozenset[WorkflowStep]] = {
    S.ACCESS_GATE: frozenset({S.UPLOAD}),
    S.UPLOAD: frozenset({S.ACCESS_GATE, S.CONFIG}),
    S.CONFIG: frozenset({S.TUNING, S.UPLOAD}),
    S.TUNING: frozenset({S.RESULTS, S.CONFIG}),
    S.RESULTS: frozenset({S.UPLOAD, S.ACCESS_GATE}),
}


@dataclass(frozen=True)
class WorkflowState:
    step: WorkflowStep = WorkflowStep.UPLOAD
    dataset: Optional[DatasetPreview] = None
    config: Optional[TuningConfig] = None
    result: Optional[TuningResult] = None

    def check(self) -> None:
        if self.step in (S.CONFIG, S.TUNING, S.RESULTS) and self.dataset is None:
            raise WorkflowError(f"{self.step.name} requires a dataset")
        if self.step in (S.TUNING, S.RESULTS) and self.config is None:
            raise WorkflowError(f"{self.step.name} requires a tuning config")
        if (self.result is not None) != (self.step == S.RESULTS):
            raise WorkflowError("A result is present exactly in RESULTS")


class WorkflowController:
    def __init__(
        self,
        store: SessionStore,
        settings: Optional[Settings] = None,
        *,
        clock: Callable[[], int] = now_ms,
    ):
        self.store = store
        self.settings = settings or Settings()
        self._clock = clock
        self.session: Optional[Session] = None
        self.state = WorkflowState()
        # Bumped on every entry into TUNING; the UI keys its pipeline on it.
        self.tuning_attempt = 0
        self.refresh()

    # -- queries -------------------------------------------------------

    @property
    def step(self) -> WorkflowStep:
        return self.state.step

    @property
    def usage_count(self) -> int:
        return read_usage(self.store)

    def is_locked(self) -> bool:
        return is_locked(self.session, self.usage_count, self.settings.free_trial_limit, now=self._clock())

    def session_remaining_ms(self) -> Optional[int]:
        if self.session is None:
            return None
        return max(self.session.expiry - self._clock(), 0)

    # -- transitions ---------------------------------------------------

    def _move(self, new_state: WorkflowState) -> WorkflowState:
        old = self.state
        if new_state.step != old.step and new_state.step not in TRANSITIONS[old.step]:
            raise WorkflowError(f"Illegal transition {old.step.name} -> {new_state.step.name}")
        new_state.check()
        self.state = new_state
        if new_state.step != old.step:
            logger.info("Workflow %s -> %s", old.step.name, new_state.step.name)
        return new_state

    def _require(self, *steps: WorkflowStep) -> None:
        if self.state.step not in steps:
            names = "/".join(s.name for s in steps)
            raise WorkflowError(f"Expected step {names}, workflow is at {self.state.step.name}")

    def refresh(self) -> WorkflowStep:
        """Re-evaluate the gate. Only acts while at UPLOAD."""
        if self.state.step == S.UPLOAD and self.is_locked():
            logger.info("Trial budget exhausted (usage=%d); showing access gate", self.usage_count)
            self._move(WorkflowState(step=S.ACCESS_GATE))
        return self.state.step

    def grant_access(self, session: Session) -> None:
        self._require(S.ACCESS_GATE)
        self.session = session
        self._move(WorkflowState(step=S.UPLOAD))
        # An already-expired session sends the user straight back.
        self.refresh()

    def ingest_complete(self, dataset: DatasetPreview) -> int:
        """UPLOAD -> CONFIG; counts one trial. Returns the new usage count."""
        self._require(S.UPLOAD)
        # A failed counter write must leave the workflow at UPLOAD.
        count = self.store.increment(USAGE_KEY)
        self._move(WorkflowState(step=S.CONFIG, dataset=dataset))
        logger.info("Dataset %s ingested; usage count now %d", dataset.filename, count)
        return count

    def back_to_upload(self) -> WorkflowStep:
        self._require(S.CONFIG)
        self._move(WorkflowState(step=S.UPLOAD))
        return self.refresh()

    def submit_config(self, config: TuningConfig) -> None:
        self._require(S.CONFIG)
        self.tuning_attempt += 1
        self._move(replace(self.state, step=S.TUNING, config=config))

    def retry_tuning(self) -> int:
        """Fresh pipeline mount for the same config."""
        self._require(S.TUNING)
        self.tuning_attempt += 1
        return self.tuning_attempt

    def complete_tuning(self, result: TuningResult) -> None:
        self._require(S.TUNING)
        self._move(replace(self.state, step=S.RESULTS, result=result))

    def back_to_config(self) -> None:
        self._require(S.TUNING)
        self._move(replace(self.state, step=S.CONFIG))

    def reset(self) -> WorkflowStep:
        """RESULTS -> UPLOAD, or ACCESS_GATE when the trial budget ran out."""
        self._require(S.RESULTS)
        target = S.ACCESS_GATE if self.is_locked() else S.UPLOAD
        self._move(WorkflowState(step=target))
        return target
