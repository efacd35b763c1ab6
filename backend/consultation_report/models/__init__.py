"""Pydantic models for the consultation report service."""

from .consultation import (
    ConsultationItem,
    DoctorIdentity,
    PatientIdentity,
    SectionId,
    parse_section_id,
)
from .report import OMITTED, Omitted, RenderOptions, ReportPayload, ReportPreview, ReportSection

__all__ = [
    "ConsultationItem",
    "DoctorIdentity",
    "PatientIdentity",
    "SectionId",
    "parse_section_id",
    "OMITTED",
    "Omitted",
    "RenderOptions",
    "ReportPayload",
    "ReportPreview",
    "ReportSection",
]
