"""
Follow-up workflow for a consultation session.

    WRITING --finish--> AWAITING_FOLLOWUP_DECISION --confirm(date)/skip--> PREVIEWING
    any state --generate(section_ids, render_options)--> PREVIEWING
    any state --edit--> WRITING

Finishing stops the consultation timer for good. The workflow is the only
writer of the session's follow-up date and render options.
"""

import time
from datetime import date
from enum import Enum
from typing import Any, Callable, List, Optional, Sequence

from consultation_report.core.logging_config import ContextLogger, get_logger
from consultation_report.models.consultation import DoctorIdentity, PatientIdentity
from consultation_report.models.report import OMITTED, RenderOptions, ReportPreview, ReportSection
from consultation_report.services.report_assembler import (
    FollowUpArg,
    Renderer,
    assemble_report,
    render_preview,
)
from consultation_report.services.sections import SectionConfig

logger = get_logger(__name__)


class WorkflowState(str, Enum):
    WRITING = "WRITING"
    AWAITING_FOLLOWUP_DECISION = "AWAITING_FOLLOWUP_DECISION"
    PREVIEWING = "PREVIEWING"


class InvalidTransitionError(RuntimeError):
    def __init__(self, action: str, state: WorkflowState):
        super().__init__(f"Cannot {action} while {state.value}")
        self.action = action
        self.state = state


class ConsultationTimer:
    """Wall time spent on a consultation. Once stopped it stays stopped."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._started_at = clock()
        self._stopped_at: Optional[float] = None

    @property
    def running(self) -> bool:
        return self._stopped_at is None

    def stop(self) -> None:
        if self._stopped_at is None:
            self._stopped_at = self._clock()

    @property
    def elapsed_seconds(self) -> int:
        end = self._clock() if self._stopped_at is None else self._stopped_at
        return max(0, int(end - self._started_at))

    @property
    def elapsed_display(self) -> str:
        hours, rest = divmod(self.elapsed_seconds, 3600)
        minutes, seconds = divmod(rest, 60)
        if hours:
            return f"{hours}:{minutes:02d}:{seconds:02d}"
        return f"{minutes:02d}:{seconds:02d}"


class FollowUpWorkflow:
    def __init__(
        self,
        sections_source: Callable[[], List[ReportSection]],
        patient: Optional[PatientIdentity],
        doctor: Optional[DoctorIdentity],
        section_config: Optional[SectionConfig] = None,
        render_options: Optional[RenderOptions] = None,
        renderer: Optional[Renderer] = None,
        timer: Optional[ConsultationTimer] = None,
        today: Callable[[], date] = date.today,
        log: Optional[ContextLogger] = None,
    ):
        self._sections_source = sections_source
        self.patient = patient
        self.doctor = doctor
        self.renderer = renderer
        self.timer = timer or ConsultationTimer()
        self._today = today
        self._logger = log or logger.bind(patient_id=patient.patient_id if patient else None)

        self._state = WorkflowState.WRITING
        self._follow_up_date: Optional[date] = None
        self._section_config = section_config or SectionConfig.default()
        self._render_options = render_options or RenderOptions()
        self.last_preview: Optional[ReportPreview] = None

    @property
    def state(self) -> WorkflowState:
        return self._state

    @property
    def follow_up_date(self) -> Optional[date]:
        return self._follow_up_date

    @property
    def section_config(self) -> SectionConfig:
        return self._section_config

    @property
    def render_options(self) -> RenderOptions:
        return self._render_options

    def _log(self, event: str, **fields: Any) -> None:
        self._logger.info(event, extra={"state": self._state.value, **fields})

    # ── transitions ───────────────────────────────────────────────────────────

    def finish(self) -> WorkflowState:
        """Done writing: stop the timer and ask for a follow-up date."""
        if self._state is WorkflowState.AWAITING_FOLLOWUP_DECISION:
            return self._state
        self.timer.stop()
        self._state = WorkflowState.AWAITING_FOLLOWUP_DECISION
        self._log("Follow-up decision requested", elapsed=self.timer.elapsed_seconds)
        return self._state

    def confirm(self, follow_up_date: date) -> ReportPreview:
        self._require(WorkflowState.AWAITING_FOLLOWUP_DECISION, "confirm a follow-up date")
        self._follow_up_date = follow_up_date
        self.timer.stop()
        return self._prepare_preview(follow_up_date=follow_up_date)

    def skip(self) -> ReportPreview:
        self._require(WorkflowState.AWAITING_FOLLOWUP_DECISION, "skip the follow-up date")
        self._follow_up_date = None
        self.timer.stop()
        return self._prepare_preview(follow_up_date=None)

    def generate(self, section_ids: Sequence[Any], render_options: RenderOptions) -> ReportPreview:
        """Regenerate from an open preview with a new section selection, keeping the follow-up."""
        self._render_options = render_options
        return self._prepare_preview(enabled_ids=section_ids, render_options=render_options)

    def edit(self) -> WorkflowState:
        """A consultation edit sends the session back to writing. The timer is not restarted."""
        if self._state is not WorkflowState.WRITING:
            self._state = WorkflowState.WRITING
            self.last_preview = None
        return self._state

    def apply_section_config(self, section_config: SectionConfig) -> None:
        self._section_config = section_config

    # ── internals ─────────────────────────────────────────────────────────────

    def _require(self, expected: WorkflowState, action: str) -> None:
        if self._state is not expected:
            raise InvalidTransitionError(action, self._state)

    def _prepare_preview(
        self,
        enabled_ids: Optional[Sequence[Any]] = None,
        follow_up_date: FollowUpArg = OMITTED,
        render_options: Optional[RenderOptions] = None,
    ) -> ReportPreview:
        all_sections = self._sections_source()
        payload = assemble_report(
            all_sections,
            enabled_ids,
            follow_up_date,
            render_options or self._render_options,
            self.patient,
            self.doctor,
            section_config=self._section_config,
            stored_follow_up=self._follow_up_date,
            generated_on=self._today(),
        )
        self.last_preview = render_preview(payload, self.renderer, all_sections)
        self._state = WorkflowState.PREVIEWING
        self._log("Report preview ready", sections=[s.value for s in payload.section_ids])
        return self.last_preview
