import os
from dotenv import load_dotenv

# Loads the .env at the project root
load_dotenv()

_TRUTHY = {"1", "true", "yes", "on"}

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./omnichat.db")
ENV = os.getenv("ENV", "dev")
ENV_NORMALIZED = ENV.lower()
IS_DEV = ENV_NORMALIZED in {"dev", "development", "local"}
IS_PROD = ENV_NORMALIZED in {"prod", "production"}

# Meta (WhatsApp / Instagram / Messenger)
META_VERIFY_TOKEN = os.getenv("META_VERIFY_TOKEN", "").strip()
META_APP_SECRET = os.getenv("META_APP_SECRET", "").strip()
META_ACCESS_TOKEN = os.getenv("META_ACCESS_TOKEN", "").strip()
META_API_VERSION = os.getenv("META_API_VERSION", "v18.0").strip()
META_GRAPH_BASE_URL = os.getenv("META_GRAPH_BASE_URL", "https://graph.facebook.com").strip().rstrip("/")
META_WA_PHONE_NUMBER_ID = os.getenv("META_WA_PHONE_NUMBER_ID", "").strip()
META_SHOP_MAP = os.getenv("META_SHOP_MAP", "").strip()
META_DEFAULT_SHOP_ID = os.getenv("META_DEFAULT_SHOP_ID", "").strip()
CHANNEL_REQUEST_TIMEOUT_SECONDS = float(os.getenv("CHANNEL_REQUEST_TIMEOUT_SECONDS", "15"))

# AI gateway
GEMINI_API_KEY = os.getenv("GEMINI_API_KEY", "").strip()
AI_PROVIDER = os.getenv("AI_PROVIDER", "gemini" if GEMINI_API_KEY else "mock").strip().lower()
AI_MODEL = os.getenv("AI_MODEL", "gemini-2.0-flash-exp").strip()
AI_MIN_INTERVAL_MS = int(os.getenv("AI_MIN_INTERVAL_MS", "1500"))
AI_MAX_ATTEMPTS = int(os.getenv("AI_MAX_ATTEMPTS", "3"))
AI_BACKOFF_BASE_MS = int(os.getenv("AI_BACKOFF_BASE_MS", "500"))
AI_REQUEST_TIMEOUT_SECONDS = float(os.getenv("AI_REQUEST_TIMEOUT_SECONDS", "20"))
AI_THROTTLE_CACHE_SIZE = int(os.getenv("AI_THROTTLE_CACHE_SIZE", "1000"))

# Dashboard session
SESSION_SECRET = os.getenv("SESSION_SECRET", "")
SESSION_MAX_AGE_SECONDS = int(os.getenv("SESSION_MAX_AGE_SECONDS", "604800"))
SESSION_COOKIE_SECURE = os.getenv(
    "SESSION_COOKIE_SECURE",
    "0" if IS_DEV else "1",
).strip().lower() in _TRUTHY

# CORS
_cors_env = os.getenv("CORS_ORIGINS", "")
CORS_ORIGINS = [origin.strip() for origin in _cors_env.split(",") if origin.strip() and origin.strip() != "*"]

if not CORS_ORIGINS and IS_DEV:
    CORS_ORIGINS = [
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ]
