# backend/consultation_report/services/consultation_service.py

from typing import Any, Dict, List, Optional, Protocol
from uuid import uuid4

from consultation_report.core.errors import ErrorKind, NormalizedError, normalize
from consultation_report.core.logging_config import get_logger
from consultation_report.models.consultation import (
    ConsultationItem,
    DoctorIdentity,
    PatientIdentity,
    SectionId,
)
from consultation_report.models.report import RenderOptions
from consultation_report.services.followup_workflow import FollowUpWorkflow
from consultation_report.services.report_assembler import Renderer
from consultation_report.services.sections import SectionConfig, build_sections

logger = get_logger(__name__)


class IdentitySource(Protocol):
    def get_patient(self, patient_id: str) -> PatientIdentity: ...

    def get_doctor(self, doctor_id: str) -> DoctorIdentity: ...


class SettingsStore(Protocol):
    def load(self, doctor_id: str) -> Dict[str, Any]: ...

    def save(self, doctor_id: str, payload: Dict[str, Any]) -> None: ...


class InMemoryIdentitySource:
    def __init__(self):
        self.patients: Dict[str, PatientIdentity] = {}
        self.doctors: Dict[str, DoctorIdentity] = {}

    def get_patient(self, patient_id: str) -> PatientIdentity:
        if patient_id not in self.patients:
            raise NormalizedError(ErrorKind.NOT_FOUND, "Patient not found", status=404)
        return self.patients[patient_id]

    def get_doctor(self, doctor_id: str) -> DoctorIdentity:
        if doctor_id not in self.doctors:
            raise NormalizedError(ErrorKind.NOT_FOUND, "Doctor not found", status=404)
        return self.doctors[doctor_id]


class InMemorySettingsStore:
    def __init__(self):
        self.documents: Dict[str, Dict[str, Any]] = {}

    def load(self, doctor_id: str) -> Dict[str, Any]:
        return dict(self.documents.get(doctor_id, {}))

    def save(self, doctor_id: str, payload: Dict[str, Any]) -> None:
        current = self.documents.setdefault(doctor_id, {})
        current.update(payload)


class ConsultationSession:
    """One doctor's working pass over one patient visit."""

    def __init__(
        self,
        session_id: str,
        patient: PatientIdentity,
        doctor: DoctorIdentity,
        settings_store: SettingsStore,
        section_config: SectionConfig,
        render_options: RenderOptions,
        renderer: Optional[Renderer] = None,
    ):
        self.session_id = session_id
        self.patient = patient
        self.doctor = doctor
        self._settings_store = settings_store
        self.items: Dict[SectionId, List[ConsultationItem]] = {s: [] for s in SectionId}
        self.log = logger.bind(session_id=session_id, patient_id=patient.patient_id, doctor_id=doctor.doctor_id)
        self.workflow = FollowUpWorkflow(
            sections_source=lambda: build_sections(self.items),
            patient=patient,
            doctor=doctor,
            section_config=section_config,
            render_options=render_options,
            renderer=renderer,
            log=self.log,
        )

    def add_item(
        self,
        category: SectionId,
        text: str,
        dosage: Optional[str] = None,
        duration: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> ConsultationItem:
        text = (text or "").strip()
        if not text:
            raise NormalizedError(ErrorKind.VALIDATION, "Item text cannot be empty", status=422)
        item = ConsultationItem(id=str(uuid4()), text=text, dosage=dosage, duration=duration, notes=notes)
        self.items[SectionId(category)].append(item)
        self.workflow.edit()
        return item

    def remove_item(self, category: SectionId, item_id: str) -> None:
        section_items = self.items[SectionId(category)]
        remaining = [item for item in section_items if item.id != item_id]
        if len(remaining) == len(section_items):
            raise NormalizedError(ErrorKind.NOT_FOUND, "Consultation item not found", status=404)
        self.items[SectionId(category)] = remaining
        self.workflow.edit()

    # Section preferences are persisted only through these two operations.

    def set_section_order(self, section_ids: List[Any]) -> SectionConfig:
        try:
            config = self.workflow.section_config.reorder(section_ids)
        except ValueError as e:
            raise NormalizedError(ErrorKind.VALIDATION, str(e), status=422, cause=e) from e
        return self._persist_section_config(config)

    def toggle_section(self, section_id: SectionId) -> SectionConfig:
        try:
            config = self.workflow.section_config.toggle(section_id)
        except ValueError as e:
            raise NormalizedError(ErrorKind.VALIDATION, str(e), status=422, cause=e) from e
        return self._persist_section_config(config)

    def _persist_section_config(self, config: SectionConfig) -> SectionConfig:
        try:
            self._settings_store.save(self.doctor.doctor_id, config.to_settings())
        except Exception as e:
            error = normalize(e)
            if error is e:
                raise
            raise error from e
        self.workflow.apply_section_config(config)
        self.log.info("Section preferences saved", extra={"enabled": [s.value for s in config.enabled_ids()]})
        return config


# In-memory store of active sessions
session_memory: Dict[str, ConsultationSession] = {}

identity_source: IdentitySource = InMemoryIdentitySource()
settings_store: SettingsStore = InMemorySettingsStore()


def open_session(
    patient_id: str,
    doctor_id: str,
    renderer: Optional[Renderer] = None,
    identities: Optional[IdentitySource] = None,
    store: Optional[SettingsStore] = None,
) -> ConsultationSession:
    """
    Start a consultation session.

    Identity and settings lookups are the first place their failures are
    observed, so they are normalized here.
    """
    identities = identities or identity_source
    store = store or settings_store
    try:
        patient = identities.get_patient(patient_id)
        doctor = identities.get_doctor(doctor_id)
        raw_settings = store.load(doctor_id) or {}
    except Exception as e:
        error = normalize(e)
        logger.warning(
            "Could not open consultation session",
            extra={"patient_id": patient_id, "code": error.code.value, "retryable": error.retryable},
        )
        if error is e:
            raise
        raise error from e

    session = ConsultationSession(
        session_id=str(uuid4()),
        patient=patient,
        doctor=doctor,
        settings_store=store,
        section_config=SectionConfig.from_settings(raw_settings),
        render_options=RenderOptions.from_settings(raw_settings),
        renderer=renderer,
    )
    session_memory[session.session_id] = session
    session.log.info("Consultation session opened")
    return session


def get_session(session_id: str) -> ConsultationSession:
    session = session_memory.get(session_id)
    if session is None:
        raise NormalizedError(ErrorKind.NOT_FOUND, "Consultation session not found", status=404)
    return session


def close_session(session_id: str) -> None:
    get_session(session_id)
    del session_memory[session_id]
