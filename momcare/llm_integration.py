# momcare/llm_integration.py
import logging

from langchain_groq import ChatGroq
from langchain_core.messages import SystemMessage, HumanMessage

from .config import GROQ_API_KEY, GROQ_MODEL
from .errors import UpstreamFailure

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = "\n".join([
    "Your name is Thozhi.",
    "You are a caring, feminine pregnancy companion and supportive friend.",
    "Be warm, gentle, and medically responsible.",
    "Do not diagnose or replace a clinician.",
    "Avoid repeating the exact same reply; tailor to the user's message.",
])

FALLBACK_REPLY = "I am here with you. Please tell me more."


def get_llm():
    """
    Returns the LangChain ChatGroq object used by the companion chat.
    """
    return ChatGroq(
        temperature=0.7,
        model_name=GROQ_MODEL,
        api_key=GROQ_API_KEY,
        max_tokens=512,
    )


def ensure_configured():
    if not GROQ_API_KEY:
        raise UpstreamFailure("GROQ_API_KEY not set", status_code=500)


async def companion_reply(message: str) -> str:
    ensure_configured()

    messages = [
        SystemMessage(content=SYSTEM_PROMPT),
        HumanMessage(content=message),
    ]
    try:
        response = await get_llm().ainvoke(messages)
    except Exception as e:
        logger.error("GROQ CHAT ERROR: %s", e)
        raise UpstreamFailure("AI failed", status_code=500) from e

    text = response.content if isinstance(response.content, str) else ""
    return text.strip() or FALLBACK_REPLY
