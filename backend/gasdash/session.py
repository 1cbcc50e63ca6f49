# backend/gasdash/session.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Request

from gasdash import config
from gasdash.pocketbase import BackendClient, BackendError

LOGGER = logging.getLogger(__name__)

# last_login の更新間隔
LAST_LOGIN_REFRESH = timedelta(hours=12)


@dataclass
class SessionInfo:
    authenticated: bool
    user: Optional[dict] = None
    is_admin: bool = False


def _parse_timestamp(value) -> Optional[datetime]:
    if not value or not isinstance(value, str):
        return None
    # PocketBase は "2025-07-01 10:00:00.000Z" 形式
    text = value.strip().replace(" ", "T")
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def is_admin_user(user: Optional[dict]) -> bool:
    if not user:
        return False
    if user.get("role") == "admin":
        return True
    roles = user.get("roles")
    if isinstance(roles, list) and "admin" in roles:
        return True
    expanded = (user.get("expand") or {}).get("roles")
    if isinstance(expanded, list):
        return any(isinstance(r, dict) and r.get("name") == "admin" for r in expanded)
    return False


async def _touch_last_login(pb: BackendClient, user: dict, now: datetime) -> None:
    last = _parse_timestamp(user.get("last_login"))
    if last is not None and last >= now - LAST_LOGIN_REFRESH:
        return
    stamp = now.isoformat().replace("+00:00", "Z")
    await pb.collection("users").update(user["id"], {"last_login": stamp})
    user["last_login"] = stamp


async def restore_session(pb: BackendClient, cookie_value: Optional[str]) -> SessionInfo:
    """Load the auth cookie into ``pb`` and refresh it against the backend."""
    pb.auth_store.load_from_cookie(cookie_value)
    if not pb.auth_store.is_valid:
        return SessionInfo(authenticated=False)

    try:
        await pb.collection("users").auth_refresh()
        user = pb.auth_store.record or {}
        if user.get("id"):
            await _touch_last_login(pb, user, datetime.now(timezone.utc))
    except BackendError as exc:
        LOGGER.info("Auth refresh failed, clearing session: %s", exc.message)
        pb.auth_store.clear()
        return SessionInfo(authenticated=False)

    return SessionInfo(authenticated=pb.auth_store.is_valid, user=user, is_admin=is_admin_user(user))


async def backend_session_middleware(request: Request, call_next):
    pb: Optional[BackendClient] = None
    try:
        pb = request.app.state.backend_factory()
    except Exception:
        LOGGER.exception("Failed to create backend client")

    try:
        session = SessionInfo(authenticated=False)
        if pb is not None:
            session = await restore_session(pb, request.cookies.get(config.AUTH_COOKIE_NAME))
        request.state.pb = pb
        request.state.session = session

        response = await call_next(request)
        if pb is not None:
            if pb.auth_store.is_valid:
                response.set_cookie(
                    config.AUTH_COOKIE_NAME,
                    pb.auth_store.export_cookie_value(),
                    max_age=config.AUTH_COOKIE_MAX_AGE,
                    path="/",
                    secure=config.IS_PRODUCTION,
                    httponly=True,
                    samesite="lax",
                )
            elif config.AUTH_COOKIE_NAME in request.cookies:
                response.delete_cookie(config.AUTH_COOKIE_NAME, path="/")
        return response
    finally:
        if pb is not None:
            await pb.aclose()


def get_backend(request: Request) -> Optional[BackendClient]:
    return getattr(request.state, "pb", None)


def get_session(request: Request) -> SessionInfo:
    return getattr(request.state, "session", None) or SessionInfo(authenticated=False)
