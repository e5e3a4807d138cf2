# momcare/ai_api.py
from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from .config import GROQ_MODEL
from .database import get_async_session
from .errors import InvalidArgument, NotFound
from . import llm_integration
from . import models as db_models
from . import schemas as api_schemas
from .utils import clean_str, utcnow

router = APIRouter(prefix="/api/ai", tags=["AI Assistant"])

MAX_LIMIT = 200


def _safe_limit(limit) -> int:
    return max(1, min(limit or 50, MAX_LIMIT))


async def _record_turn(db: AsyncSession, user_id: str, session_id: str, role: str, content: str):
    db.add(db_models.AiMessage(user_id=user_id, session_id=session_id, role=role, content=content))
    session = await db.get(db_models.ChatSession, session_id)
    if session is None:
        session = db_models.ChatSession(id=session_id, user_id=user_id)
        db.add(session)
    session.last_message = content
    session.last_at = utcnow()
    await db.commit()


@router.post("/chat")
async def chat(payload: api_schemas.ChatRequest, response: Response, db: AsyncSession = Depends(get_async_session)):
    if not clean_str(payload.message):
        raise InvalidArgument("Message required")
    if not clean_str(payload.user_id):
        raise InvalidArgument("User ID required")
    if not clean_str(payload.session_id):
        raise InvalidArgument("Session ID required")
    llm_integration.ensure_configured()

    await _record_turn(db, payload.user_id, payload.session_id, "user", payload.message)
    reply = await llm_integration.companion_reply(payload.message)
    await _record_turn(db, payload.user_id, payload.session_id, "assistant", reply)

    response.headers["X-AI-Model"] = GROQ_MODEL
    return {"reply": reply}


@router.get("/history")
async def history(
    user_id: str = Query("", alias="userId"),
    session_id: str = Query("", alias="sessionId"),
    limit: int = None,
    db: AsyncSession = Depends(get_async_session),
):
    if not clean_str(user_id):
        raise InvalidArgument("User ID required")
    if not clean_str(session_id):
        raise InvalidArgument("Session ID required")

    res = await db.execute(
        select(db_models.AiMessage)
        .where(db_models.AiMessage.user_id == user_id, db_models.AiMessage.session_id == session_id)
        .order_by(db_models.AiMessage.created_at.asc())
        .limit(_safe_limit(limit))
    )
    return {"messages": [api_schemas.AiMessage.model_validate(m) for m in res.scalars().all()]}


@router.post("/sessions")
async def create_session(payload: api_schemas.SessionCreate, db: AsyncSession = Depends(get_async_session)):
    if not clean_str(payload.user_id):
        raise InvalidArgument("User ID required")
    session = db_models.ChatSession(user_id=payload.user_id, title=payload.title or "", last_message="")
    db.add(session)
    await db.commit()
    return {"session": api_schemas.ChatSession.model_validate(session)}


@router.get("/sessions")
async def list_sessions(
    user_id: str = Query("", alias="userId"),
    limit: int = None,
    db: AsyncSession = Depends(get_async_session),
):
    if not clean_str(user_id):
        raise InvalidArgument("User ID required")
    res = await db.execute(
        select(db_models.ChatSession)
        .where(db_models.ChatSession.user_id == user_id)
        .order_by(db_models.ChatSession.last_at.desc())
        .limit(_safe_limit(limit))
    )
    return {"sessions": [api_schemas.ChatSession.model_validate(s) for s in res.scalars().all()]}


@router.patch("/sessions/{session_id}")
async def rename_session(session_id: str, payload: api_schemas.SessionRename, db: AsyncSession = Depends(get_async_session)):
    if not clean_str(payload.title):
        raise InvalidArgument("Title required")
    session = await db.get(db_models.ChatSession, session_id)
    if not session:
        raise NotFound("Session not found")
    session.title = payload.title.strip()
    await db.commit()
    return {"session": api_schemas.ChatSession.model_validate(session)}


@router.delete("/sessions/{session_id}")
async def delete_session(session_id: str, db: AsyncSession = Depends(get_async_session)):
    await db.execute(delete(db_models.AiMessage).where(db_models.AiMessage.session_id == session_id))
    await db.execute(delete(db_models.ChatSession).where(db_models.ChatSession.id == session_id))
    await db.commit()
    return {"success": True}
