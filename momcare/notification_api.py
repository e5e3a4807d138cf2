# momcare/notification_api.py
import asyncio
import logging
from datetime import date
from typing import List, Optional

import httpx
from fastapi import APIRouter, Depends, Query
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from .database import get_async_session
from .errors import InvalidArgument, MomCareError
from .fetch import get_http_client, get_last_modified
from .health_updates import HealthLink, fetch_health_updates, severity_for
from . import models as db_models
from . import schemas as api_schemas
from .utils import clean_str, utcnow
from .weather import Advisory, derive_advisories, fetch_weather, geocode

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/notifications", tags=["Notifications"])

FEED_LIMIT = 50
MAX_LIST_LIMIT = 200

RESOURCES = [
    {"title": "MoHFW Press Releases (English)", "url": "https://www.mohfw.gov.in/press-release", "source": "mohfw"},
    {"title": "WHO Maternal Health", "url": "https://www.who.int/topics/pregnancy/en/", "source": "who"},
    {
        "title": "ACOG Patient Education",
        "url": "https://www.acog.org/clinical-information/patient-education-materials",
        "source": "acog",
    },
]


# =========================================================================
# FINGERPRINTS
# =========================================================================
def weather_fingerprint(user_id: str, city: str, advisory: Advisory, day: date) -> str:
    # Day-scoped: the same advisory can fire again tomorrow
    return f"{user_id}|{city}|{advisory.type}|{advisory.title}|{day.isoformat()}"


def health_fingerprint(user_id: str, url: str) -> str:
    return f"{user_id}|mohfw|{url}"


async def insert_if_absent(db: AsyncSession, **fields) -> Optional[db_models.Notification]:
    """Create a notification unless one with the same fingerprint exists."""
    res = await db.execute(
        select(db_models.Notification.id).where(db_models.Notification.fingerprint == fields["fingerprint"])
    )
    if res.first() is not None:
        return None

    notification = db_models.Notification(**fields)
    db.add(notification)
    try:
        await db.commit()
    except IntegrityError:
        # Another request stored the same fingerprint first
        await db.rollback()
        return None
    return notification


async def store_weather_notifications(
    db: AsyncSession, user_id: str, city: str, advisories: List[Advisory], day: date
) -> List[db_models.Notification]:
    created = []
    for advisory in advisories:
        notification = await insert_if_absent(
            db,
            user_id=user_id,
            city=city,
            type=advisory.type,
            title=advisory.title,
            message=advisory.message,
            severity=advisory.severity,
            source="open-meteo",
            fingerprint=weather_fingerprint(user_id, city, advisory, day),
        )
        if notification:
            created.append(notification)
    return created


async def store_health_notifications(db: AsyncSession, user_id: str, links: List[HealthLink]) -> List[db_models.Notification]:
    created = []
    for link in links:
        title = f"MoHFW: {link.title}"
        notification = await insert_if_absent(
            db,
            user_id=user_id,
            city="India",
            type="health",
            title=title,
            message="Official MoHFW update. Open to read details.",
            severity=severity_for(title),
            source="mohfw",
            url=link.url,
            fingerprint=health_fingerprint(user_id, link.url),
        )
        if notification:
            created.append(notification)
    return created


async def recent_notifications(db: AsyncSession, user_id: str, city: str = None, limit: int = FEED_LIMIT):
    query = select(db_models.Notification).where(db_models.Notification.user_id == user_id)
    if city:
        query = query.where(db_models.Notification.city == city)
    res = await db.execute(query.order_by(db_models.Notification.created_at.desc()).limit(limit))
    return [api_schemas.Notification.model_validate(n) for n in res.scalars().all()]


def sort_resources(resources: List[api_schemas.ResourceLink]) -> List[api_schemas.ResourceLink]:
    """Newest first; undated entries keep their relative order at the end."""
    dated = sorted((r for r in resources if r.updated_at), key=lambda r: r.updated_at, reverse=True)
    return dated + [r for r in resources if not r.updated_at]


# =========================================================================
# 1. REFRESH (weather advisories + ministry updates)
# =========================================================================
@router.post("/refresh", response_model=api_schemas.NotificationRefreshResponse)
async def refresh_notifications(
    payload: api_schemas.NotificationRefreshRequest,
    db: AsyncSession = Depends(get_async_session),
    client: httpx.AsyncClient = Depends(get_http_client),
):
    user_id, city = clean_str(payload.user_id), clean_str(payload.city)
    if not user_id:
        raise InvalidArgument("User ID required")
    if not city:
        raise InvalidArgument("City required")

    resolved_city = city
    summary = None
    # A geocoding/weather failure only drops the summary; the rest of the feed still refreshes
    try:
        geo = await geocode(client, city)
        resolved_city = geo.name
        weather = await fetch_weather(client, geo.lat, geo.lon)
        advisories, summary = derive_advisories(weather, geo.name)
        created = await store_weather_notifications(db, user_id, geo.name, advisories, utcnow().date())
        if created:
            logger.info("Stored %d weather advisories for %s in %s", len(created), user_id, geo.name)
    except (MomCareError, KeyError, TypeError, ValueError) as e:
        logger.warning("Weather/geo fetch failed for %s: %s", city, e)
        summary = None

    links = await fetch_health_updates(client)
    await store_health_notifications(db, user_id, links)

    return api_schemas.NotificationRefreshResponse(
        city=resolved_city,
        summary=summary,
        notifications=await recent_notifications(db, user_id),
    )


# =========================================================================
# 2. LIST
# =========================================================================
@router.get("")
async def list_notifications(
    user_id: str = Query(..., alias="userId"),
    city: Optional[str] = None,
    limit: Optional[int] = None,
    db: AsyncSession = Depends(get_async_session),
):
    if not clean_str(user_id):
        raise InvalidArgument("User ID required")
    safe_limit = max(1, min(limit or FEED_LIMIT, MAX_LIST_LIMIT))
    return {"notifications": await recent_notifications(db, user_id, city=city, limit=safe_limit)}


# =========================================================================
# 3. CURATED RESOURCES
# =========================================================================
@router.get("/resources")
async def list_resources(client: httpx.AsyncClient = Depends(get_http_client)):
    stamps = await asyncio.gather(*(get_last_modified(client, r["url"]) for r in RESOURCES))
    resources = [api_schemas.ResourceLink(**r, updated_at=stamp) for r, stamp in zip(RESOURCES, stamps)]
    return {"resources": sort_resources(resources)}
