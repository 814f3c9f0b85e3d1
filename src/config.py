"""Runtime configuration read from environment variables."""

import os

VERSION = "1.0.0"

WEBHOOK_SECRET = os.environ.get("WEBHOOK_SECRET", "")
API_KEY = os.environ.get("API_KEY", "").strip()
CORS_ORIGINS = [
    o.strip() for o in os.environ.get("CORS_ORIGINS", "").split(",") if o.strip()
]

HTTP_TIMEOUT_SECONDS = float(os.environ.get("HTTP_TIMEOUT_SECONDS", "30"))
USER_AGENT = os.environ.get("USER_AGENT", f"safefetch/{VERSION}")

MAX_REQUEST_SIZE = int(os.environ.get("MAX_REQUEST_SIZE", str(100 * 1024)))  # bytes
PROXY_RATE_LIMIT = os.environ.get("PROXY_RATE_LIMIT", "30/minute")
