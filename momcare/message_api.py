# momcare/message_api.py
import logging
from typing import Dict

from fastapi import APIRouter, Depends, Query
from sqlalchemy import func, or_, and_, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from .database import get_async_session
from .errors import InvalidArgument, NotFound
from .identity import resolve_identity, resolve_identities
from . import models as db_models
from . import schemas as api_schemas
from .utils import clean_str, utcnow

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/messages", tags=["Messages"])

Msg = db_models.Message


async def mark_thread_read(db: AsyncSession, user_id: str, peer_id: str) -> int:
    """Stamp read_at on peer->user messages that are still unread. Already-read rows keep their time."""
    res = await db.execute(
        update(Msg)
        .where(Msg.sender_id == peer_id, Msg.receiver_id == user_id, Msg.read_at.is_(None))
        .values(read_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    return res.rowcount or 0


async def unread_by_sender(db: AsyncSession, user_id: str) -> Dict[str, int]:
    res = await db.execute(
        select(Msg.sender_id, func.count(Msg.id))
        .where(Msg.receiver_id == user_id, Msg.read_at.is_(None))
        .group_by(Msg.sender_id)
    )
    return {sender: count for sender, count in res.all()}


@router.post("/send", status_code=201)
async def send_message(payload: api_schemas.MessageSend, db: AsyncSession = Depends(get_async_session)):
    content = clean_str(payload.content)
    if not content:
        raise InvalidArgument("Message content is required")

    sender = await resolve_identity(db, payload.sender_id)
    receiver = await resolve_identity(db, payload.receiver_id)
    if not sender or not receiver:
        raise NotFound("Sender or receiver not found")

    message = Msg(sender_id=sender.id, receiver_id=receiver.id, content=content, read_at=None)
    db.add(message)
    await db.commit()
    return {"success": True, "message": api_schemas.Message.model_validate(message)}


@router.get("/thread")
async def get_thread(
    user_id: str = Query(..., alias="userId"),
    peer_id: str = Query(..., alias="peerId"),
    db: AsyncSession = Depends(get_async_session),
):
    """Full history between two identities. Opening a thread marks the incoming side read."""
    if not clean_str(user_id) or not clean_str(peer_id):
        raise InvalidArgument("Invalid user/peer id")

    marked = await mark_thread_read(db, user_id, peer_id)
    if marked:
        logger.debug("Marked %d messages read for %s from %s", marked, user_id, peer_id)

    res = await db.execute(
        select(Msg)
        .where(or_(
            and_(Msg.sender_id == user_id, Msg.receiver_id == peer_id),
            and_(Msg.sender_id == peer_id, Msg.receiver_id == user_id),
        ))
        .order_by(Msg.created_at.asc())
    )
    messages = [api_schemas.Message.model_validate(m) for m in res.scalars().all()]
    return {"success": True, "messages": messages}


@router.get("/conversations/{user_id}")
async def get_conversations(user_id: str, db: AsyncSession = Depends(get_async_session)):
    res = await db.execute(
        select(Msg)
        .where(or_(Msg.sender_id == user_id, Msg.receiver_id == user_id))
        .order_by(Msg.created_at.desc())
    )

    # Newest first, so the first message seen per peer is the latest one
    latest_by_peer: Dict[str, db_models.Message] = {}
    for m in res.scalars().all():
        peer_id = m.receiver_id if m.sender_id == user_id else m.sender_id
        latest_by_peer.setdefault(peer_id, m)

    unread = await unread_by_sender(db, user_id)
    peers = await resolve_identities(db, latest_by_peer.keys())

    conversations = []
    for peer_id, msg in latest_by_peer.items():
        peer = peers.get(peer_id)
        conversations.append(api_schemas.Conversation(
            peer_id=peer_id,
            peer_name=peer.name if peer else "Unknown",
            peer_role=peer.role if peer else "unknown",
            peer_email=peer.email if peer else "",
            last_message=msg.content,
            last_at=msg.created_at,
            unread_count=unread.get(peer_id, 0),
        ))
    return {"success": True, "conversations": conversations}


@router.get("/unread/{user_id}")
async def get_unread_count(user_id: str, db: AsyncSession = Depends(get_async_session)):
    res = await db.execute(
        select(func.count(Msg.id)).where(Msg.receiver_id == user_id, Msg.read_at.is_(None))
    )
    return {"success": True, "totalUnread": res.scalar_one()}
