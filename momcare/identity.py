# momcare/identity.py
import hmac
import logging
from typing import Dict, Iterable, Literal, Optional, Union

from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from werkzeug.security import check_password_hash, generate_password_hash

from .models import Patient, User

logger = logging.getLogger(__name__)

# Hash methods werkzeug writes as the prefix of a stored hash
HASH_METHODS = ("scrypt", "pbkdf2")


# =========================================================================
# IDENTITY UNION
# =========================================================================
class PatientIdentity(BaseModel):
    role: Literal["patient"] = "patient"
    id: str
    name: str
    email: str


class DoctorIdentity(BaseModel):
    role: Literal["doctor", "admin"]
    id: str
    name: str
    email: str
    specialty: Optional[str] = None


Identity = Union[PatientIdentity, DoctorIdentity]


def _patient_identity(p: Patient) -> PatientIdentity:
    return PatientIdentity(id=p.id, name=p.name, email=p.email)


def _doctor_identity(u: User) -> DoctorIdentity:
    return DoctorIdentity(id=u.id, role=u.role, name=u.name, email=u.email, specialty=u.specialty)


async def resolve_identity(session: AsyncSession, identity_id: str) -> Optional[Identity]:
    """Look an id up as a patient first, then as a doctor/admin user."""
    if not identity_id:
        return None
    patient = await session.get(Patient, identity_id)
    if patient:
        return _patient_identity(patient)
    user = await session.get(User, identity_id)
    if user:
        return _doctor_identity(user)
    return None


async def resolve_identities(session: AsyncSession, ids: Iterable[str]) -> Dict[str, Identity]:
    ids = list(ids)
    if not ids:
        return {}
    found: Dict[str, Identity] = {}
    res = await session.execute(select(Patient).where(Patient.id.in_(ids)))
    for p in res.scalars().all():
        found[p.id] = _patient_identity(p)
    res = await session.execute(select(User).where(User.id.in_(ids)))
    for u in res.scalars().all():
        found.setdefault(u.id, _doctor_identity(u))
    return found


# =========================================================================
# PASSWORDS
# =========================================================================
def hash_password(password: str) -> str:
    return generate_password_hash(password)


def is_password_hash(stored: str) -> bool:
    return stored.count("$") >= 2 and stored.split(":", 1)[0] in HASH_METHODS


async def verify_password_and_migrate(session: AsyncSession, password: str, account) -> bool:
    """
    Check a login password against a stored User/Patient.
    Legacy rows holding a plain-text password are accepted once and re-hashed.
    """
    if account is None or not account.password or password is None:
        return False

    stored = account.password
    if is_password_hash(stored):
        return check_password_hash(stored, password)

    if hmac.compare_digest(stored.encode(), password.encode()):
        logger.info("Migrating plain-text password for %s to a hash", account.email)
        account.password = hash_password(password)
        await session.commit()
        return True
    return False
