# backend/consultation_report/api/routes/consultation_routes.py

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from consultation_report.models.consultation import SectionId
from consultation_report.models.report import RenderOptions
from consultation_report.services.consultation_service import (
    ConsultationSession,
    close_session,
    get_session,
    open_session,
)
from consultation_report.services.report_assembler import Renderer

router = APIRouter(prefix="/consultation", tags=["consultation"])


def get_renderer() -> Optional[Renderer]:
    """Markup renderer for previews. Host applications override this dependency."""
    return None


class OpenSessionRequest(BaseModel):
    patient_id: str
    doctor_id: str


class AddItemRequest(BaseModel):
    text: str
    dosage: Optional[str] = None
    duration: Optional[str] = None
    notes: Optional[str] = None


class ConfirmFollowUpRequest(BaseModel):
    follow_up_date: date


class GenerateRequest(BaseModel):
    section_ids: List[SectionId]
    render_options: RenderOptions = RenderOptions()


class SectionOrderRequest(BaseModel):
    section_ids: List[SectionId]


def _summary(session: ConsultationSession) -> dict:
    workflow = session.workflow
    return {
        "session_id": session.session_id,
        "patient_id": session.patient.patient_id,
        "doctor_id": session.doctor.doctor_id,
        "state": workflow.state.value,
        "follow_up_date": workflow.follow_up_date.isoformat() if workflow.follow_up_date else None,
        "elapsed": workflow.timer.elapsed_display,
        "timer_running": workflow.timer.running,
        "render_options": workflow.render_options.model_dump(),
        "sections": _sections(session),
        "items": {
            section_id.value: [item.model_dump() for item in items]
            for section_id, items in session.items.items()
        },
    }


def _sections(session: ConsultationSession) -> list:
    config = session.workflow.section_config
    return [
        {"id": section_id.value, "label": section_id.label, "enabled": config.is_enabled(section_id)}
        for section_id in config.ordered_ids()
    ]


@router.post("/sessions", status_code=201)
async def create_session(body: OpenSessionRequest, renderer: Optional[Renderer] = Depends(get_renderer)):
    session = open_session(body.patient_id, body.doctor_id, renderer=renderer)
    return _summary(session)


@router.get("/sessions/{session_id}")
async def read_session(session_id: str):
    return _summary(get_session(session_id))


@router.delete("/sessions/{session_id}", status_code=204)
async def delete_session(session_id: str):
    close_session(session_id)


@router.post("/sessions/{session_id}/items/{category}", status_code=201)
async def add_item(session_id: str, category: SectionId, body: AddItemRequest):
    session = get_session(session_id)
    item = session.add_item(category, body.text, dosage=body.dosage, duration=body.duration, notes=body.notes)
    return item.model_dump()


@router.delete("/sessions/{session_id}/items/{category}/{item_id}", status_code=204)
async def remove_item(session_id: str, category: SectionId, item_id: str):
    get_session(session_id).remove_item(category, item_id)


@router.post("/sessions/{session_id}/finish")
async def finish_writing(session_id: str):
    """Stop the timer and ask for a follow-up date. Repeating it while the prompt is open is a no-op."""
    session = get_session(session_id)
    session.workflow.finish()
    return _summary(session)


@router.post("/sessions/{session_id}/confirm")
async def confirm_follow_up(session_id: str, body: ConfirmFollowUpRequest):
    preview = get_session(session_id).workflow.confirm(body.follow_up_date)
    return preview.model_dump(mode="json")


@router.post("/sessions/{session_id}/skip")
async def skip_follow_up(session_id: str):
    preview = get_session(session_id).workflow.skip()
    return preview.model_dump(mode="json")


@router.post("/sessions/{session_id}/generate")
async def generate_report(session_id: str, body: GenerateRequest):
    """Regenerate the preview with another section selection; the follow-up date is kept."""
    preview = get_session(session_id).workflow.generate(body.section_ids, body.render_options)
    return preview.model_dump(mode="json")


@router.put("/sessions/{session_id}/sections/order")
async def set_section_order(session_id: str, body: SectionOrderRequest):
    session = get_session(session_id)
    session.set_section_order(body.section_ids)
    return {"sections": _sections(session)}


@router.post("/sessions/{session_id}/sections/{section_id}/toggle")
async def toggle_section(session_id: str, section_id: SectionId):
    session = get_session(session_id)
    session.toggle_section(section_id)
    return {"sections": _sections(session)}
