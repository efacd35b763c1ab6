# backend/consultation_report/services/report_assembler.py

from datetime import date
from typing import Any, Callable, Iterable, List, Optional, Sequence, Union

from consultation_report.core.config import settings
from consultation_report.core.errors import missing_context
from consultation_report.core.logging_config import get_logger
from consultation_report.models.consultation import DoctorIdentity, PatientIdentity, SectionId, parse_section_id
from consultation_report.models.report import (
    OMITTED,
    Omitted,
    RenderOptions,
    ReportPayload,
    ReportPreview,
    ReportSection,
)
from consultation_report.services.sections import SectionConfig

logger = get_logger(__name__)

# Turns a payload into previewable markup. Supplied by the host application.
Renderer = Callable[[ReportPayload, RenderOptions], str]

FollowUpArg = Union[date, None, Omitted]


def format_report_date(value: date) -> str:
    return value.strftime(settings.REPORT_DATE_FORMAT)


def resolve_section_ids(
    enabled_ids: Optional[Sequence[Any]],
    section_config: Optional[SectionConfig],
) -> List[SectionId]:
    """
    Decide which sections appear, and in what order.

    A non-empty ``enabled_ids`` wins as given. Otherwise the persisted config
    applies: its order, minus sections explicitly switched off.
    """
    if enabled_ids:
        resolved: List[SectionId] = []
        for key in enabled_ids:
            section_id = parse_section_id(key)
            if section_id is not None and section_id not in resolved:
                resolved.append(section_id)
        return resolved

    config = section_config or SectionConfig.default()
    return config.enabled_ids()


def select_sections(all_sections: Iterable[ReportSection], section_ids: Sequence[SectionId]) -> List[ReportSection]:
    """Project ``all_sections`` onto ``section_ids``, keeping the order of ``section_ids``."""
    by_id = {}
    for section in all_sections:
        by_id.setdefault(section.id, section)
    return [by_id[section_id] for section_id in section_ids if section_id in by_id]


def assemble_report(
    all_sections: Sequence[ReportSection],
    enabled_ids: Optional[Sequence[Any]] = None,
    follow_up_date: FollowUpArg = OMITTED,
    render_options: Optional[RenderOptions] = None,
    patient: Optional[PatientIdentity] = None,
    doctor: Optional[DoctorIdentity] = None,
    *,
    section_config: Optional[SectionConfig] = None,
    stored_follow_up: Optional[date] = None,
    generated_on: Optional[date] = None,
) -> ReportPayload:
    """
    Build the renderer-ready payload for one preview.

    ``follow_up_date`` is three-state: OMITTED reuses ``stored_follow_up``,
    None leaves the report without a follow-up, a date is used as is.

    Raises NormalizedError(MISSING_CONTEXT) when either party is unknown.
    """
    if patient is None or doctor is None:
        raise missing_context("Patient or doctor details missing")

    resolved_follow_up = stored_follow_up if follow_up_date is OMITTED else follow_up_date
    section_ids = resolve_section_ids(enabled_ids, section_config)
    sections = select_sections(all_sections, section_ids)

    payload = ReportPayload(
        patient=patient,
        doctor=doctor,
        generated_on=format_report_date(generated_on or date.today()),
        sections=tuple(sections),
        follow_up_date=format_report_date(resolved_follow_up) if resolved_follow_up else None,
        render_options=render_options or RenderOptions(),
    )
    logger.debug(
        "Report assembled",
        extra={
            "patient_id": patient.patient_id,
            "sections": [s.value for s in payload.section_ids],
            "has_follow_up": payload.follow_up_date is not None,
        },
    )
    return payload


def render_preview(
    payload: ReportPayload,
    renderer: Optional[Renderer] = None,
    available_sections: Sequence[ReportSection] = (),
) -> ReportPreview:
    """Hand the payload to the renderer and bundle the result for display."""
    markup = renderer(payload, payload.render_options) if renderer is not None else None
    return ReportPreview(
        payload=payload,
        markup=markup,
        available_section_ids=[section.id for section in available_sections],
        selected_section_ids=payload.section_ids,
    )
