# backend/gasdash/pocketbase.py
"""Async client for the hosted PocketBase backend.

Only the handful of REST calls the dashboard needs are covered:
paginated record listing, auth refresh, record update and the health
probe. Everything goes through one ``httpx.AsyncClient`` per request.
"""
from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Optional
from urllib.parse import quote, unquote

import httpx
import jwt

from gasdash import config

LOGGER = logging.getLogger(__name__)

# クッキーのサイズ上限（ブラウザ制限）
_MAX_COOKIE_BYTES = 4096


class BackendError(Exception):
    """Raised for any failed call to the backend (HTTP error or transport failure)."""

    def __init__(self, status: int, message: str, data: Optional[dict] = None):
        super().__init__(message)
        self.status = status
        self.message = message
        self.data = data or {}


@dataclass
class ListResult:
    items: list[dict]
    page: int = 1
    per_page: int = 0
    total_items: int = 0
    total_pages: int = 0

    @classmethod
    def from_payload(cls, payload: dict) -> "ListResult":
        items = payload.get("items")
        return cls(
            items=list(items) if isinstance(items, list) else [],
            page=int(payload.get("page") or 1),
            per_page=int(payload.get("perPage") or 0),
            total_items=int(payload.get("totalItems") or 0),
            total_pages=int(payload.get("totalPages") or 0),
        )


def token_expired(token: str, leeway_s: float = 0.0) -> bool:
    try:
        payload = jwt.decode(token, options={"verify_signature": False})
    except jwt.InvalidTokenError:
        return True
    exp = payload.get("exp")
    if exp is None:
        return False
    try:
        return float(exp) - leeway_s <= time.time()
    except (TypeError, ValueError):
        return True


@dataclass
class AuthStore:
    token: str = ""
    record: Optional[dict] = None

    @property
    def is_valid(self) -> bool:
        return bool(self.token) and not token_expired(self.token)

    def save(self, token: str, record: Optional[dict]) -> None:
        self.token = token or ""
        self.record = record if isinstance(record, dict) else None

    def clear(self) -> None:
        self.token = ""
        self.record = None

    def load_from_cookie(self, value: Optional[str]) -> None:
        """Restore token/record from the raw ``pb_auth`` cookie value."""
        if not value:
            return
        try:
            data = json.loads(unquote(value))
        except ValueError:
            LOGGER.debug("Ignoring malformed auth cookie")
            return
        if not isinstance(data, dict):
            return
        # 旧SDKは "model" キーで保存している
        self.save(data.get("token") or "", data.get("record") or data.get("model"))

    def export_cookie_value(self) -> str:
        raw = {"token": self.token, "record": self.record}
        value = quote(json.dumps(raw, separators=(",", ":")))
        if len(value) > _MAX_COOKIE_BYTES and self.record:
            slim = {k: self.record.get(k) for k in ("id", "email", "collectionId", "collectionName", "verified")}
            value = quote(json.dumps({"token": self.token, "record": slim}, separators=(",", ":")))
        return value


class RecordService:
    def __init__(self, client: "BackendClient", collection: str):
        self.client = client
        self.collection = collection

    @property
    def base_path(self) -> str:
        return f"/api/collections/{quote(self.collection, safe='')}"

    async def get_list(
        self,
        page: int = 1,
        per_page: int = 30,
        *,
        sort: Optional[str] = None,
        filter: Optional[str] = None,
        expand: Optional[str] = None,
        fields: Optional[str] = None,
    ) -> ListResult:
        params: dict[str, Any] = {"page": page, "perPage": per_page}
        for key, value in (("sort", sort), ("filter", filter), ("expand", expand), ("fields", fields)):
            if value:
                params[key] = value
        payload = await self.client.send("GET", f"{self.base_path}/records", params=params)
        return ListResult.from_payload(payload)

    async def auth_refresh(self) -> dict:
        payload = await self.client.send("POST", f"{self.base_path}/auth-refresh")
        self.client.auth_store.save(payload.get("token") or "", payload.get("record") or payload.get("model"))
        return payload

    async def update(self, record_id: str, body: dict) -> dict:
        return await self.client.send("PATCH", f"{self.base_path}/records/{quote(record_id, safe='')}", json=body)


@dataclass
class BackendClient:
    base_url: str
    transport: Optional[httpx.AsyncBaseTransport] = None
    auth_store: AuthStore = field(default_factory=AuthStore)

    def __post_init__(self) -> None:
        self._http = httpx.AsyncClient(base_url=self.base_url.rstrip("/"), transport=self.transport)

    def collection(self, name: str) -> RecordService:
        return RecordService(self, name)

    async def send(self, method: str, path: str, **kwargs: Any) -> dict:
        headers = kwargs.pop("headers", {}) or {}
        if self.auth_store.token:
            headers.setdefault("Authorization", self.auth_store.token)
        try:
            resp = await self._http.request(method, path, headers=headers, **kwargs)
        except httpx.HTTPError as exc:
            raise BackendError(0, f"{method} {path} failed: {exc}") from exc

        try:
            data = resp.json() if resp.content else {}
        except ValueError:
            data = {}
        if resp.status_code >= 400:
            message = data.get("message") if isinstance(data, dict) else None
            raise BackendError(resp.status_code, message or f"{method} {path} returned {resp.status_code}", data if isinstance(data, dict) else None)
        return data if isinstance(data, dict) else {}

    async def health(self) -> dict:
        return await self.send("GET", "/api/health")

    async def aclose(self) -> None:
        await self._http.aclose()


def create_backend_client() -> BackendClient:
    return BackendClient(config.POCKETBASE_URL)
