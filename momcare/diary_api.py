# momcare/diary_api.py
from fastapi import APIRouter, Depends, Query
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from .database import get_async_session
from .errors import Conflict, InvalidArgument
from . import models as db_models
from . import schemas as api_schemas
from .utils import clean_str, normalize_date_key

router = APIRouter(prefix="/api/diary", tags=["Diary"])


async def _find_entry(db: AsyncSession, user_id: str, day: str):
    res = await db.execute(select(db_models.DiaryEntry).where(
        db_models.DiaryEntry.user_id == user_id, db_models.DiaryEntry.date == day
    ))
    return res.scalars().first()


@router.get("")
async def get_entry(
    user_id: str = Query("", alias="userId"),
    date: str = Query("", alias="date"),
    db: AsyncSession = Depends(get_async_session),
):
    if not clean_str(user_id):
        raise InvalidArgument("User ID required")
    day = normalize_date_key(date)
    if not day:
        raise InvalidArgument("Valid date required")

    entry = await _find_entry(db, user_id, day)
    return {"entry": api_schemas.DiaryEntry.model_validate(entry) if entry else None}


@router.post("/upsert")
async def upsert_entry(payload: api_schemas.DiaryUpsert, db: AsyncSession = Depends(get_async_session)):
    """One entry per user per day. Saving again replaces every field, nothing is merged."""
    user_id = clean_str(payload.user_id)
    if not user_id:
        raise InvalidArgument("User ID required")
    day = normalize_date_key(payload.date)
    if not day:
        raise InvalidArgument("Valid date required")
    if payload.mood and payload.mood not in db_models.MOODS:
        raise InvalidArgument("Invalid mood")

    entry = await _find_entry(db, user_id, day)
    if entry is None:
        entry = db_models.DiaryEntry(user_id=user_id, date=day)
        db.add(entry)

    entry.text = payload.text or ""
    entry.mood = payload.mood or None
    entry.image_data = payload.image_data or ""
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise Conflict("Diary entry was saved concurrently, please retry")

    return {"entry": api_schemas.DiaryEntry.model_validate(entry)}
