# backend/consultation_report/models/consultation.py

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict


class SectionId(str, Enum):
    """Consultation categories, declared in canonical report order."""

    COMPLAINTS = "complaints"
    DIAGNOSIS = "diagnosis"
    EXAMINATION = "examination"
    INVESTIGATION = "investigation"
    PROCEDURE = "procedure"
    PRESCRIPTIONS = "prescriptions"
    INSTRUCTION = "instruction"
    NOTES = "notes"

    @property
    def label(self) -> str:
        return SECTION_TITLES[self]


SECTION_TITLES = {
    SectionId.COMPLAINTS: "Complaints",
    SectionId.DIAGNOSIS: "Diagnosis",
    SectionId.EXAMINATION: "Examination",
    SectionId.INVESTIGATION: "Investigation",
    SectionId.PROCEDURE: "Procedures",
    SectionId.PRESCRIPTIONS: "Prescriptions",
    SectionId.INSTRUCTION: "Instructions",
    SectionId.NOTES: "Notes",
}

# Plural keys used by the consultation data layer
CATEGORY_ALIASES = {
    "diagnoses": SectionId.DIAGNOSIS,
    "examinations": SectionId.EXAMINATION,
    "investigations": SectionId.INVESTIGATION,
    "procedures": SectionId.PROCEDURE,
    "instructions": SectionId.INSTRUCTION,
}


def parse_section_id(key) -> Optional[SectionId]:
    """Map a category key (canonical or plural alias) to its SectionId."""
    if isinstance(key, SectionId):
        return key
    if not isinstance(key, str):
        return None
    try:
        return SectionId(key)
    except ValueError:
        return CATEGORY_ALIASES.get(key)


class ConsultationItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    text: str
    dosage: Optional[str] = None
    duration: Optional[str] = None
    notes: Optional[str] = None


class PatientIdentity(BaseModel):
    model_config = ConfigDict(frozen=True)

    patient_id: str
    name: str
    gender: Optional[str] = None
    age: Optional[int] = None
    mobile: Optional[str] = None
    blood_group: Optional[str] = None
    locality: Optional[str] = None


class DoctorIdentity(BaseModel):
    model_config = ConfigDict(frozen=True)

    doctor_id: str
    first_name: str
    last_name: str = ""
    prefix: str = "Dr."
    qualification: Optional[str] = None
    designation: Optional[str] = None
    registration_no: Optional[str] = None
    clinic_name: Optional[str] = None
    clinic_address: Optional[str] = None

    @property
    def full_name(self) -> str:
        return " ".join(part for part in (self.prefix, self.first_name, self.last_name) if part)
