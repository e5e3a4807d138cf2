# momcare/config.py
import logging
import os
from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

DATABASE_URL = os.getenv("DATABASE_URL")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# --- CORS ---
CORS_CREDENTIALS = os.getenv("CORS_CREDENTIALS", "true").strip().lower() == "true"
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "").split(",") if o.strip()]

# --- Admin (single hardcoded credential pair, not a stored record) ---
ADMIN_EMAIL = os.getenv("ADMIN_EMAIL", "admin@vnx.com")
ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD", "admin123")

# --- Outbound fetches (weather + health updates) ---
FETCH_TIMEOUT = float(os.getenv("FETCH_TIMEOUT", "8.0"))
GEOCODE_COUNTRY = os.getenv("GEOCODE_COUNTRY", "IN")
GEOCODING_URL = os.getenv("GEOCODING_URL", "https://geocoding-api.open-meteo.com/v1/search")
FORECAST_URL = os.getenv("FORECAST_URL", "https://api.open-meteo.com/v1/forecast")
MOHFW_PRESS_URL = os.getenv("MOHFW_PRESS_URL", "https://mohfw.gov.in/press-releases")
MOHFW_HOME_URL = os.getenv("MOHFW_HOME_URL", "https://mohfw.gov.in/")

# --- Groq Configuration ---
GROQ_API_KEY = os.getenv("GROQ_API_KEY")
GROQ_MODEL = os.getenv("GROQ_MODEL", "llama-3.1-8b-instant")

if not DATABASE_URL:
    raise ValueError("No DATABASE_URL set in .env")

if CORS_CREDENTIALS and not CORS_ORIGINS:
    raise ValueError("CORS_ORIGINS must be set when CORS_CREDENTIALS=true. Use comma-separated allowed origins.")

if not GROQ_API_KEY:
    logger.warning("GROQ_API_KEY is missing in .env. AI chat will fail.")
