# momcare/models.py
from sqlalchemy import (
    Column, Integer, String, Boolean, Date, ForeignKey, DateTime, Text, Index, UniqueConstraint, text
)
from sqlalchemy.orm import relationship

from .database import Base
from .utils import new_id, utcnow

ID = String(64)

APPOINTMENT_STATUSES = ("pending", "approved", "rejected", "completed")
ACTIVE_APPOINTMENT_STATUSES = ("pending", "approved")
RISK_STATUSES = ("normal", "attention", "high-risk")
MOODS = ("happy", "calm", "tired", "sad")
SEVERITIES = ("info", "warning", "danger")


# --- 1. DOCTORS (and any stored admin-like users) ---
class User(Base):
    __tablename__ = "users"

    id = Column(ID, primary_key=True, default=new_id)
    name = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    password = Column(String, nullable=False)
    role = Column(String, nullable=False, default="doctor")  # "doctor" or "admin"
    specialty = Column(String, nullable=True)
    phone = Column(String, nullable=True)
    qualification = Column(String, nullable=True)
    experience = Column(String, nullable=True)
    hospital = Column(String, nullable=True)
    location = Column(String, nullable=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    patients = relationship("Patient", back_populates="doctor")


# --- 2. PATIENTS ---
class Patient(Base):
    __tablename__ = "patients"

    id = Column(ID, primary_key=True, default=new_id)
    name = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    password = Column(String, nullable=False)
    age = Column(Integer, nullable=True)
    pregnancy_start_date = Column(Date, nullable=False)
    gestational_week = Column(Integer, default=1)
    contact_phone = Column(String, nullable=True)
    husband_name = Column(String, nullable=True)
    husband_phone = Column(String, nullable=True)
    medical_notes = Column(Text, nullable=True)
    risk_status = Column(String, default="normal")
    doctor_id = Column(ID, ForeignKey("users.id"), nullable=False, index=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    doctor = relationship("User", back_populates="patients")


# --- 3. APPOINTMENTS ---
class Appointment(Base):
    __tablename__ = "appointments"
    # One live (pending/approved) request per doctor slot. Rejected and
    # completed rows fall out of the index so the slot can be requested again.
    __table_args__ = (
        Index(
            "uq_appointments_active_slot",
            "doctor_id", "date", "time",
            unique=True,
            sqlite_where=text("status IN ('pending', 'approved')"),
            postgresql_where=text("status IN ('pending', 'approved')"),
        ),
    )

    id = Column(ID, primary_key=True, default=new_id)
    patient_id = Column(ID, ForeignKey("patients.id"), nullable=False, index=True)
    doctor_id = Column(ID, ForeignKey("users.id"), nullable=False, index=True)
    date = Column(Date, nullable=False)
    time = Column(String, nullable=False)  # free-text label, e.g. "10:30 AM"
    notes = Column(Text, default="")
    status = Column(String, nullable=False, default="pending")
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    patient = relationship("Patient")
    doctor = relationship("User")


# --- 4. DOCTOR <-> PATIENT MESSAGES ---
class Message(Base):
    __tablename__ = "messages"

    id = Column(ID, primary_key=True, default=new_id)
    sender_id = Column(ID, nullable=False, index=True)
    receiver_id = Column(ID, nullable=False, index=True)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime, default=utcnow, index=True)
    read_at = Column(DateTime, nullable=True)


# --- 5. WEATHER / HEALTH NOTIFICATIONS ---
class Notification(Base):
    __tablename__ = "notifications"

    id = Column(ID, primary_key=True, default=new_id)
    user_id = Column(String, nullable=False, index=True)
    city = Column(String, nullable=False, index=True)
    type = Column(String, nullable=False)
    title = Column(String, nullable=False)
    message = Column(Text, nullable=False)
    severity = Column(String, default="info")
    source = Column(String, default="open-meteo")
    url = Column(String, default="")
    fingerprint = Column(String, unique=True, nullable=False)
    read = Column(Boolean, default=False)
    created_at = Column(DateTime, default=utcnow, index=True)


# --- 6. DIARY ---
class DiaryEntry(Base):
    __tablename__ = "diary_entries"
    __table_args__ = (UniqueConstraint("user_id", "date", name="uq_diary_user_date"),)

    id = Column(ID, primary_key=True, default=new_id)
    user_id = Column(String, nullable=False, index=True)
    date = Column(String(10), nullable=False)  # yyyy-mm-dd
    text = Column(Text, default="")
    mood = Column(String, nullable=True)
    image_data = Column(Text, default="")  # base64 data URL, passed through untouched
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)


# --- 7. AI ASSISTANT ---
class ChatSession(Base):
    __tablename__ = "chat_sessions"

    id = Column(ID, primary_key=True, default=new_id)
    user_id = Column(String, nullable=False, index=True)
    title = Column(String, default="")
    last_message = Column(Text, default="")
    last_at = Column(DateTime, default=utcnow)
    created_at = Column(DateTime, default=utcnow)


class AiMessage(Base):
    __tablename__ = "ai_messages"

    id = Column(ID, primary_key=True, default=new_id)
    user_id = Column(String, nullable=False, index=True)
    session_id = Column(ID, nullable=False, index=True)
    role = Column(String, nullable=False)  # "user" or "assistant"
    content = Column(Text, nullable=False)
    created_at = Column(DateTime, default=utcnow)
