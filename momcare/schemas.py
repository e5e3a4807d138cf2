# momcare/schemas.py
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from typing import List, Literal, Optional
from datetime import date, datetime


# --- Base Configuration ---
class BaseSchema(BaseModel):
    # ORM objects in, camelCase JSON out (the dashboards speak camelCase)
    model_config = ConfigDict(from_attributes=True, alias_generator=to_camel, populate_by_name=True)


# --- Auth / Identity Schemas ---
class LoginRequest(BaseSchema):
    email: str
    password: str
    role: Optional[str] = None


class DoctorCreate(BaseSchema):
    """Admin-only. The admin pair travels with the request, there is no session."""
    admin_email: str
    admin_password: str
    name: str
    email: str
    password: str
    specialty: Optional[str] = None
    phone: Optional[str] = None


class DoctorUpdate(BaseSchema):
    name: Optional[str] = None
    email: Optional[str] = None
    specialty: Optional[str] = None
    phone: Optional[str] = None
    qualification: Optional[str] = None
    experience: Optional[str] = None
    hospital: Optional[str] = None
    location: Optional[str] = None


class Doctor(BaseSchema):
    id: str
    name: str
    email: str
    role: str
    specialty: Optional[str] = None
    phone: Optional[str] = None
    qualification: Optional[str] = None
    experience: Optional[str] = None
    hospital: Optional[str] = None
    location: Optional[str] = None


class DoctorWithCount(BaseSchema):
    id: str
    name: str
    email: str
    specialty: Optional[str] = None
    phone: Optional[str] = None
    patient_count: int = 0


class PatientCreate(BaseSchema):
    doctor_id: str
    name: str
    email: str
    password: str
    age: Optional[int] = None
    pregnancy_start_date: Optional[str] = None
    phone: Optional[str] = None
    notes: Optional[str] = None


class PatientUpdate(BaseSchema):
    name: Optional[str] = None
    email: Optional[str] = None
    age: Optional[int] = None
    contact_phone: Optional[str] = None
    pregnancy_start_date: Optional[str] = None
    husband_name: Optional[str] = None
    husband_phone: Optional[str] = None
    medical_notes: Optional[str] = None
    risk_status: Optional[Literal["normal", "attention", "high-risk"]] = None


class Patient(BaseSchema):
    id: str
    name: str
    email: str
    role: Literal["patient"] = "patient"
    age: Optional[int] = None
    pregnancy_start_date: Optional[date] = None
    gestational_week: Optional[int] = None
    contact_phone: Optional[str] = None
    husband_name: Optional[str] = None
    husband_phone: Optional[str] = None
    medical_notes: Optional[str] = None
    risk_status: str = "normal"
    doctor_id: str


class PatientDetail(Patient):
    doctor: Optional[Doctor] = None


# --- Appointment Schemas ---
class AppointmentCreate(BaseSchema):
    # Required fields are checked by the handler so the error reads like the rest of the API
    patient_id: Optional[str] = None
    doctor_id: Optional[str] = None
    date: Optional[str] = None
    time: Optional[str] = None
    notes: Optional[str] = None


class AppointmentStatusUpdate(BaseSchema):
    status: Optional[str] = None


class Appointment(BaseSchema):
    id: str
    patient_id: str
    patient_name: str = ""
    doctor_id: str
    doctor_name: str = ""
    date: str
    time: str
    notes: str = ""
    status: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class AppointmentOverview(BaseSchema):
    pending: List[Appointment]
    today: List[Appointment]
    upcoming: List[Appointment]


# --- Messaging Schemas ---
class MessageSend(BaseSchema):
    sender_id: str
    receiver_id: str
    content: Optional[str] = None


class Message(BaseSchema):
    id: str
    sender_id: str
    receiver_id: str
    content: str
    created_at: datetime
    read_at: Optional[datetime] = None


class Conversation(BaseSchema):
    peer_id: str
    peer_name: str
    peer_role: str
    peer_email: str
    last_message: str
    last_at: datetime
    unread_count: int


# --- Notification Schemas ---
class NotificationRefreshRequest(BaseSchema):
    user_id: Optional[str] = None
    city: Optional[str] = None


class WeatherSummary(BaseSchema):
    temp: int
    condition: str
    desc: str
    humidity: float


class Notification(BaseSchema):
    id: str
    user_id: str
    city: str
    type: str
    title: str
    message: str
    severity: str
    source: str
    url: str = ""
    fingerprint: str
    read: bool = False
    created_at: datetime


class NotificationRefreshResponse(BaseSchema):
    city: str
    summary: Optional[WeatherSummary] = None
    notifications: List[Notification]


class ResourceLink(BaseSchema):
    title: str
    url: str
    source: str
    updated_at: Optional[str] = None


# --- Diary Schemas ---
class DiaryUpsert(BaseSchema):
    user_id: Optional[str] = None
    date: Optional[str] = None
    text: Optional[str] = None
    mood: Optional[str] = None
    image_data: Optional[str] = None


class DiaryEntry(BaseSchema):
    id: str
    user_id: str
    date: str
    text: str = ""
    mood: Optional[str] = None
    image_data: str = ""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# --- AI Assistant Schemas ---
class ChatRequest(BaseSchema):
    message: Optional[str] = None
    user_id: Optional[str] = None
    session_id: Optional[str] = None


class SessionCreate(BaseSchema):
    user_id: Optional[str] = None
    title: Optional[str] = None


class SessionRename(BaseSchema):
    title: Optional[str] = None


class ChatSession(BaseSchema):
    id: str
    user_id: str
    title: str = ""
    last_message: str = ""
    last_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


class AiMessage(BaseSchema):
    id: str
    user_id: str
    session_id: str
    role: str
    content: str
    created_at: datetime
