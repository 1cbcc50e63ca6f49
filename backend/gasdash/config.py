# backend/gasdash/config.py
import logging
import os

# 1) POCKETBASE_URL が指定されていれば優先
# 2) それ以外は本番の PocketBase を使用
POCKETBASE_URL = os.getenv("POCKETBASE_URL") or "https://w.zaur.app"

APP_ENV = os.getenv("APP_ENV", "development")
IS_PRODUCTION = APP_ENV == "production"

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

_origins_env = os.getenv("CORS_ALLOW_ORIGINS", "*")
CORS_ALLOW_ORIGINS = [o.strip() for o in _origins_env.split(",") if o.strip()] or ["*"]

# 認証クッキー
AUTH_COOKIE_NAME = "pb_auth"
AUTH_COOKIE_MAX_AGE = 7 * 24 * 60 * 60


def configure_logging() -> None:
    logging.basicConfig(
        level=getattr(logging, LOG_LEVEL, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
