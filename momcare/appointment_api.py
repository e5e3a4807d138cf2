# momcare/appointment_api.py
import logging
from datetime import date
from typing import Iterable, List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.orm import selectinload

from .database import get_async_session
from .errors import Conflict, InvalidArgument, NotFound
from . import models as db_models
from . import schemas as api_schemas
from .utils import clean_str, to_date_only, utcnow

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/appointments", tags=["Appointments"])

SLOT_TAKEN = "This slot is already requested or booked"

# Allowed moves of the status workflow. rejected/completed are terminal.
STATUS_TRANSITIONS = {
    "pending": {"approved", "rejected"},
    "approved": {"completed", "rejected"},
    "rejected": set(),
    "completed": set(),
}


def check_transition(current: str, new: str):
    if new not in db_models.APPOINTMENT_STATUSES:
        raise InvalidArgument("Invalid status")
    if current == new:
        return
    if new not in STATUS_TRANSITIONS.get(current, set()):
        raise Conflict(f"Cannot change appointment from {current} to {new}")


def serialize_appointment(appt: db_models.Appointment, patient=None, doctor=None) -> api_schemas.Appointment:
    return api_schemas.Appointment(
        id=appt.id,
        patient_id=appt.patient_id,
        patient_name=patient.name if patient else "",
        doctor_id=appt.doctor_id,
        doctor_name=doctor.name if doctor else "",
        date=appt.date.isoformat() if appt.date else "",
        time=appt.time or "",
        notes=appt.notes or "",
        status=appt.status if appt.status in db_models.APPOINTMENT_STATUSES else "pending",
        created_at=appt.created_at,
        updated_at=appt.updated_at,
    )


def sort_appointments(appts: Iterable[db_models.Appointment]) -> List[db_models.Appointment]:
    """Soonest slot first; for the same slot, most recently created first."""
    ordered = sorted(appts, key=lambda a: a.created_at, reverse=True)
    return sorted(ordered, key=lambda a: (a.date, a.time))


def build_overview(appts: List[api_schemas.Appointment], today: date) -> api_schemas.AppointmentOverview:
    iso_today = today.isoformat()
    return api_schemas.AppointmentOverview(
        pending=[a for a in appts if a.status == "pending"],
        today=[a for a in appts if a.status == "approved" and a.date == iso_today],
        upcoming=[a for a in appts if a.status == "approved" and a.date > iso_today],
    )


async def _slot_is_taken(db: AsyncSession, doctor_id: str, day: date, time_label: str) -> bool:
    res = await db.execute(select(db_models.Appointment.id).where(
        db_models.Appointment.doctor_id == doctor_id,
        db_models.Appointment.date == day,
        db_models.Appointment.time == time_label,
        db_models.Appointment.status.in_(db_models.ACTIVE_APPOINTMENT_STATUSES),
    ))
    return res.first() is not None


async def _list_appointments(db: AsyncSession, where) -> List[api_schemas.Appointment]:
    res = await db.execute(
        select(db_models.Appointment)
        .where(where)
        .options(selectinload(db_models.Appointment.patient), selectinload(db_models.Appointment.doctor))
    )
    return [serialize_appointment(a, a.patient, a.doctor) for a in sort_appointments(res.scalars().all())]


# =========================================================================
# 1. BOOKING
# =========================================================================
@router.post("", status_code=201)
async def create_appointment(payload: api_schemas.AppointmentCreate, db: AsyncSession = Depends(get_async_session)):
    time_label = clean_str(payload.time)
    if not payload.patient_id or not clean_str(payload.date) or not time_label:
        raise InvalidArgument("patientId, date and time are required")

    patient = await db.get(db_models.Patient, payload.patient_id)
    if not patient:
        raise NotFound("Patient not found")

    doctor_id = payload.doctor_id or patient.doctor_id
    if not doctor_id:
        raise InvalidArgument("No assigned doctor found for this patient")
    doctor = await db.get(db_models.User, doctor_id)
    if not doctor or doctor.role != "doctor":
        raise NotFound("Doctor not found")

    appt_date = to_date_only(payload.date)
    if appt_date is None:
        raise InvalidArgument("Invalid appointment date")

    # Fast path only; the partial unique index is what actually guards the slot
    if await _slot_is_taken(db, doctor.id, appt_date, time_label):
        raise Conflict(SLOT_TAKEN)

    appt = db_models.Appointment(
        patient_id=patient.id,
        doctor_id=doctor.id,
        date=appt_date,
        time=time_label,
        notes=clean_str(payload.notes),
        status="pending",
    )
    db.add(appt)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        # rollback expires every loaded instance, only plain values are safe here
        logger.info("Lost slot race for doctor %s on %s %s", doctor_id, appt_date, time_label)
        raise Conflict(SLOT_TAKEN)

    logger.info("Appointment %s requested by patient %s", appt.id, patient.id)
    return {
        "success": True,
        "message": "Appointment request sent",
        "appointment": serialize_appointment(appt, patient, doctor),
    }


# =========================================================================
# 2. LISTS
# =========================================================================
@router.get("/patient/{patient_id}")
async def list_patient_appointments(patient_id: str, db: AsyncSession = Depends(get_async_session)):
    appts = await _list_appointments(db, db_models.Appointment.patient_id == patient_id)
    return {"success": True, "appointments": appts}


@router.get("/doctor/{doctor_id}")
async def list_doctor_appointments(doctor_id: str, db: AsyncSession = Depends(get_async_session)):
    appts = await _list_appointments(db, db_models.Appointment.doctor_id == doctor_id)
    return {"success": True, "appointments": appts}


@router.get("/doctor/{doctor_id}/overview", response_model=api_schemas.AppointmentOverview)
async def doctor_overview(doctor_id: str, today: Optional[str] = None, db: AsyncSession = Depends(get_async_session)):
    day = to_date_only(today) if today else utcnow().date()
    if day is None:
        raise InvalidArgument("Invalid date")
    appts = await _list_appointments(db, db_models.Appointment.doctor_id == doctor_id)
    return build_overview(appts, day)


# =========================================================================
# 3. STATUS WORKFLOW
# =========================================================================
@router.put("/{appointment_id}/status")
async def update_appointment_status(
    appointment_id: str,
    payload: api_schemas.AppointmentStatusUpdate,
    db: AsyncSession = Depends(get_async_session),
):
    if payload.status not in db_models.APPOINTMENT_STATUSES:
        raise InvalidArgument("Invalid status")

    appt = await db.get(
        db_models.Appointment,
        appointment_id,
        options=[selectinload(db_models.Appointment.patient), selectinload(db_models.Appointment.doctor)],
    )
    if not appt:
        raise NotFound("Appointment not found")

    check_transition(appt.status, payload.status)
    if appt.status != payload.status:
        previous = appt.status
        appt.status = payload.status
        try:
            await db.commit()
        except IntegrityError:
            await db.rollback()
            raise Conflict(SLOT_TAKEN)
        logger.info("Appointment %s: %s -> %s", appt.id, previous, appt.status)

    return {
        "success": True,
        "message": "Appointment status updated",
        "appointment": serialize_appointment(appt, appt.patient, appt.doctor),
    }
