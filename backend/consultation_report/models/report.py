# backend/consultation_report/models/report.py

from enum import Enum
from typing import Any, List, Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict

from consultation_report.models.consultation import DoctorIdentity, PatientIdentity, SectionId


class Omitted(Enum):
    """Marker for an argument the caller did not pass, as opposed to passing None."""

    OMITTED = "omitted"

    def __repr__(self) -> str:
        return "OMITTED"


OMITTED = Omitted.OMITTED


class ReportSection(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: SectionId
    title: str
    items: Tuple[str, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.items


class RenderOptions(BaseModel):
    """Cosmetic switches handed through to the renderer."""

    model_config = ConfigDict(frozen=True)

    include_patient_details: bool = True
    include_doctor_details: bool = True
    include_header_section: bool = True
    include_footer_section: bool = True

    @classmethod
    def from_settings(cls, raw: Mapping[str, Any]) -> "RenderOptions":
        """Read the consultation-setting toggles persisted by the settings screen."""

        def flag(key: str) -> bool:
            return raw.get(key) is not False

        return cls(
            include_patient_details=flag("patient_details_in_consultation"),
            include_doctor_details=flag("doctor_details_in_consultation"),
            include_header_section=flag("letterpad_header"),
            include_footer_section=flag("letterpad_footer"),
        )


class ReportPayload(BaseModel):
    model_config = ConfigDict(frozen=True)

    patient: PatientIdentity
    doctor: DoctorIdentity
    generated_on: str
    sections: Tuple[ReportSection, ...]
    follow_up_date: Optional[str] = None
    render_options: RenderOptions = RenderOptions()

    @property
    def section_ids(self) -> List[SectionId]:
        return [section.id for section in self.sections]


class ReportPreview(BaseModel):
    model_config = ConfigDict(frozen=True)

    payload: ReportPayload
    markup: Optional[str] = None
    available_section_ids: List[SectionId] = []
    selected_section_ids: List[SectionId] = []
