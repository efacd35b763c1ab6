"""
Shared fixtures for the consultation report tests.
"""
from datetime import date

import pytest

from consultation_report.models.consultation import DoctorIdentity, PatientIdentity
from consultation_report.services import consultation_service
from consultation_report.services.consultation_service import InMemoryIdentitySource, InMemorySettingsStore


@pytest.fixture
def patient():
    return PatientIdentity(patient_id="pat-1", name="Asha Rao", gender="female", age=34)


@pytest.fixture
def doctor():
    return DoctorIdentity(doctor_id="doc-1", first_name="Meera", last_name="Iyer", qualification="MD DVL")


@pytest.fixture
def today():
    return date(2024, 5, 20)


@pytest.fixture
def identities(patient, doctor):
    source = InMemoryIdentitySource()
    source.patients[patient.patient_id] = patient
    source.doctors[doctor.doctor_id] = doctor
    return source


@pytest.fixture
def store():
    return InMemorySettingsStore()


@pytest.fixture(autouse=True)
def clean_sessions(monkeypatch, identities, store):
    """Each test gets an empty session registry wired to fresh collaborators."""
    monkeypatch.setattr(consultation_service, "session_memory", {})
    monkeypatch.setattr(consultation_service, "identity_source", identities)
    monkeypatch.setattr(consultation_service, "settings_store", store)
    yield
