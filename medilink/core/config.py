"""
Runtime configuration read from environment variables.
"""
import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent.parent

DATABASE_URL = os.environ.get("DATABASE_URL", f"sqlite:///{BASE_DIR / 'medilink.db'}")
SQL_ECHO = os.environ.get("SQL_ECHO", "").lower() == "true"

SECRET_KEY = os.environ.get("SECRET_KEY", "medilink-secret-key")
ALGORITHM = "HS256"
# 7 days
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.environ.get("ACCESS_TOKEN_EXPIRE_MINUTES", "10080"))

UPLOAD_DIR = Path(os.environ.get("UPLOAD_DIR", str(BASE_DIR / "uploads")))
MAX_UPLOAD_BYTES = int(os.environ.get("MAX_UPLOAD_BYTES", str(5 * 1024 * 1024)))

DEFAULT_RADIUS_KM = float(os.environ.get("DEFAULT_RADIUS_KM", "5"))

ALLOWED_ORIGINS = [o.strip() for o in os.environ.get("ALLOWED_ORIGINS", "*").split(",") if o.strip()]

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
