# momcare/main.py
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import CORS_CREDENTIALS, CORS_ORIGINS, LOG_LEVEL
from .database import engine, init_db
from .errors import register_exception_handlers

# --- IMPORT MODULES ---
from . import (
    auth_api,
    appointment_api,
    message_api,
    notification_api,
    diary_api,
    ai_api,
    pregnancy_api,
)

logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_db()
    logger.info("DATABASE: Tables ready.")
    yield
    await engine.dispose()


app = FastAPI(title="MomCare Backend", lifespan=lifespan)

# --- CORS SETTINGS ---
origins = CORS_ORIGINS or ["*"]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=CORS_CREDENTIALS,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# --- REGISTER ROUTERS ---
app.include_router(auth_api.router)
app.include_router(appointment_api.router)
app.include_router(message_api.router)
app.include_router(notification_api.router)
app.include_router(diary_api.router)
app.include_router(ai_api.router)
app.include_router(pregnancy_api.router)


@app.get("/")
def read_root():
    return {"message": "MomCare Backend is Running"}
