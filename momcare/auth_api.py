# momcare/auth_api.py
import logging
from urllib.parse import unquote

from fastapi import APIRouter, Depends
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from .config import ADMIN_EMAIL, ADMIN_PASSWORD
from .database import get_async_session
from .errors import Conflict, Forbidden, InvalidArgument, NotFound, Unauthorized
from .identity import hash_password, verify_password_and_migrate
from . import models as db_models
from . import schemas as api_schemas
from .utils import clean_str, gestational_week, to_date_only

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Auth"])


def _is_admin(email, password) -> bool:
    return email == ADMIN_EMAIL and password == ADMIN_PASSWORD


async def _get_doctor(db: AsyncSession, doctor_id: str) -> db_models.User:
    doctor = await db.get(db_models.User, doctor_id)
    if not doctor or doctor.role != "doctor":
        raise NotFound("Doctor not found")
    return doctor


async def _get_patient(db: AsyncSession, patient_id: str) -> db_models.Patient:
    patient = await db.get(db_models.Patient, patient_id)
    if not patient:
        raise NotFound("Patient not found")
    return patient


async def _email_taken(db: AsyncSession, model, email: str, exclude_id: str = None) -> bool:
    res = await db.execute(select(model).where(model.email == email))
    existing = res.scalars().first()
    return existing is not None and existing.id != exclude_id


async def _commit_unique(db: AsyncSession, message: str):
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise Conflict(message)


def _patient_detail(patient: db_models.Patient, doctor: db_models.User = None) -> api_schemas.PatientDetail:
    # Built from the flat schema so the lazy `doctor` relationship is never touched
    flat = api_schemas.Patient.model_validate(patient)
    return api_schemas.PatientDetail(
        **flat.model_dump(),
        doctor=api_schemas.Doctor.model_validate(doctor) if doctor is not None else None,
    )


# =========================================================================
# 1. LOGIN
# =========================================================================
@router.post("/login")
async def login(creds: api_schemas.LoginRequest, db: AsyncSession = Depends(get_async_session)):
    # The admin pair wins regardless of the role selected
    if _is_admin(creds.email, creds.password):
        return {
            "success": True,
            "role": "admin",
            "user": {"id": "admin", "email": ADMIN_EMAIL, "name": "Admin", "role": "admin"},
            "message": "Admin login successful",
        }

    if creds.role == "doctor":
        res = await db.execute(select(db_models.User).where(
            db_models.User.email == creds.email, db_models.User.role == "doctor"
        ))
        doctor = res.scalars().first()
        if not await verify_password_and_migrate(db, creds.password, doctor):
            raise Unauthorized("Invalid doctor credentials")
        return {"success": True, "role": "doctor", "user": api_schemas.Doctor.model_validate(doctor)}

    if creds.role == "patient":
        res = await db.execute(select(db_models.Patient).where(db_models.Patient.email == creds.email))
        patient = res.scalars().first()
        if not await verify_password_and_migrate(db, creds.password, patient):
            raise Unauthorized("Invalid patient credentials")
        return {"success": True, "role": "patient", "user": api_schemas.Patient.model_validate(patient)}

    raise InvalidArgument("Invalid role selected")


# =========================================================================
# 2. ADMIN
# =========================================================================
@router.post("/admin/create-doctor", status_code=201)
async def create_doctor(payload: api_schemas.DoctorCreate, db: AsyncSession = Depends(get_async_session)):
    if not _is_admin(payload.admin_email, payload.admin_password):
        raise Forbidden("Only admin can create doctors")

    email = clean_str(payload.email)
    if not email or not clean_str(payload.name) or not payload.password:
        raise InvalidArgument("name, email and password are required")
    if await _email_taken(db, db_models.User, email):
        raise Conflict("Doctor already exists")

    doctor = db_models.User(
        name=clean_str(payload.name),
        email=email,
        password=hash_password(payload.password),
        role="doctor",
        specialty=payload.specialty,
        phone=payload.phone,
    )
    db.add(doctor)
    await _commit_unique(db, "Doctor already exists")
    logger.info("Admin created doctor %s", doctor.id)
    return {"success": True, "message": "Doctor created successfully", "doctor": api_schemas.Doctor.model_validate(doctor)}


@router.get("/admin/doctors")
async def list_doctors(db: AsyncSession = Depends(get_async_session)):
    counts = (
        select(db_models.Patient.doctor_id, func.count(db_models.Patient.id).label("n"))
        .group_by(db_models.Patient.doctor_id)
        .subquery()
    )
    res = await db.execute(
        select(db_models.User, func.coalesce(counts.c.n, 0))
        .outerjoin(counts, counts.c.doctor_id == db_models.User.id)
        .where(db_models.User.role == "doctor")
        .order_by(db_models.User.created_at)
    )
    doctors = [
        api_schemas.DoctorWithCount(
            id=d.id, name=d.name, email=d.email, specialty=d.specialty, phone=d.phone, patient_count=n
        )
        for d, n in res.all()
    ]
    return {"success": True, "doctors": doctors}


# =========================================================================
# 3. DOCTORS
# =========================================================================
@router.post("/doctor/create-patient", status_code=201)
async def create_patient(payload: api_schemas.PatientCreate, db: AsyncSession = Depends(get_async_session)):
    doctor = await db.get(db_models.User, payload.doctor_id)
    if not doctor or doctor.role != "doctor":
        raise Forbidden("Only doctors can create patients")

    email = clean_str(payload.email)
    if not email or not clean_str(payload.name) or not payload.password:
        raise InvalidArgument("name, email and password are required")
    start = to_date_only(payload.pregnancy_start_date)
    if start is None:
        raise InvalidArgument("Valid pregnancyStartDate required")
    if await _email_taken(db, db_models.Patient, email):
        raise Conflict("Patient already exists")

    patient = db_models.Patient(
        name=clean_str(payload.name),
        email=email,
        password=hash_password(payload.password),
        age=payload.age,
        pregnancy_start_date=start,
        gestational_week=gestational_week(start),
        contact_phone=payload.phone,
        medical_notes=payload.notes,
        risk_status="normal",
        doctor_id=doctor.id,
    )
    db.add(patient)
    await _commit_unique(db, "Patient already exists")
    logger.info("Doctor %s created patient %s", doctor.id, patient.id)
    return {"success": True, "message": "Patient created successfully", "patient": _patient_detail(patient, doctor)}


@router.get("/doctor/patients/{doctor_id}")
async def list_doctor_patients(doctor_id: str, db: AsyncSession = Depends(get_async_session)):
    res = await db.execute(
        select(db_models.Patient).where(db_models.Patient.doctor_id == doctor_id).order_by(db_models.Patient.created_at)
    )
    patients = [api_schemas.Patient.model_validate(p) for p in res.scalars().all()]
    return {"success": True, "patients": patients}


@router.get("/doctor/{doctor_id}")
async def get_doctor(doctor_id: str, db: AsyncSession = Depends(get_async_session)):
    doctor = await _get_doctor(db, doctor_id)
    return {"success": True, "doctor": api_schemas.Doctor.model_validate(doctor)}


@router.put("/doctor/{doctor_id}")
async def update_doctor(doctor_id: str, payload: api_schemas.DoctorUpdate, db: AsyncSession = Depends(get_async_session)):
    doctor = await _get_doctor(db, doctor_id)

    email = clean_str(payload.email)
    if email and email != doctor.email:
        if await _email_taken(db, db_models.User, email, exclude_id=doctor.id):
            raise Conflict("Email already in use")
        doctor.email = email

    if clean_str(payload.name):
        doctor.name = clean_str(payload.name)
    for field in ("specialty", "phone", "qualification", "experience", "hospital", "location"):
        value = getattr(payload, field)
        if value is not None:
            setattr(doctor, field, value.strip())

    await _commit_unique(db, "Email already in use")
    return {
        "success": True,
        "message": "Doctor profile updated successfully",
        "doctor": api_schemas.Doctor.model_validate(doctor),
    }


# =========================================================================
# 4. PATIENTS
# =========================================================================
@router.get("/patient/by-email/{email}")
async def get_patient_by_email(email: str, db: AsyncSession = Depends(get_async_session)):
    res = await db.execute(select(db_models.Patient).where(db_models.Patient.email == unquote(email)))
    patient = res.scalars().first()
    if not patient:
        raise NotFound("Patient not found")
    doctor = await db.get(db_models.User, patient.doctor_id)
    return {"success": True, "patient": _patient_detail(patient, doctor)}


@router.get("/patient/{patient_id}")
async def get_patient(patient_id: str, db: AsyncSession = Depends(get_async_session)):
    patient = await _get_patient(db, patient_id)
    doctor = await db.get(db_models.User, patient.doctor_id)
    return {"success": True, "patient": _patient_detail(patient, doctor)}


@router.put("/patient/{patient_id}")
async def update_patient(patient_id: str, payload: api_schemas.PatientUpdate, db: AsyncSession = Depends(get_async_session)):
    patient = await _get_patient(db, patient_id)

    email = clean_str(payload.email)
    if email and email != patient.email:
        if await _email_taken(db, db_models.Patient, email, exclude_id=patient.id):
            raise Conflict("Email already in use")
        patient.email = email

    if clean_str(payload.name):
        patient.name = clean_str(payload.name)
    if payload.age is not None:
        patient.age = payload.age
    for field in ("contact_phone", "husband_name", "husband_phone", "medical_notes"):
        value = getattr(payload, field)
        if value is not None:
            setattr(patient, field, value.strip())
    if payload.risk_status is not None:
        patient.risk_status = payload.risk_status

    if payload.pregnancy_start_date:
        start = to_date_only(payload.pregnancy_start_date)
        if start is None:
            raise InvalidArgument("Invalid pregnancyStartDate")
        # Gestational week always follows the start date
        patient.pregnancy_start_date = start
        patient.gestational_week = gestational_week(start)

    await _commit_unique(db, "Email already in use")
    doctor = await db.get(db_models.User, patient.doctor_id)
    return {
        "success": True,
        "message": "Profile updated successfully",
        "patient": _patient_detail(patient, doctor),
    }
