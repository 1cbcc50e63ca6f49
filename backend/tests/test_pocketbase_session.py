"""Tests for the backend client's auth store and the session restore."""

from __future__ import annotations

from datetime import datetime, timezone

import httpx
import pytest

from builders import FakePocketBase, auth_cookie, make_token
from gasdash.pocketbase import AuthStore, BackendClient, BackendError, ListResult, token_expired
from gasdash.session import is_admin_user, restore_session


def test_token_expiry():
    assert token_expired(make_token(exp_offset_s=3600)) is False
    assert token_expired(make_token(exp_offset_s=-1)) is True
    assert token_expired("garbage") is True


def test_cookie_round_trip():
    token = make_token()
    store = AuthStore()
    store.load_from_cookie(auth_cookie(token, {"id": "user1", "email": "a@b.c"}))
    assert store.is_valid
    assert store.record["email"] == "a@b.c"

    restored = AuthStore()
    restored.load_from_cookie(store.export_cookie_value())
    assert restored.token == token


def test_legacy_model_key_and_garbage_cookie():
    store = AuthStore()
    store.load_from_cookie('{"token": "t", "model": {"id": "u"}}')
    assert store.record == {"id": "u"}

    empty = AuthStore()
    empty.load_from_cookie("%7Bnot-json")
    assert empty.token == ""
    assert not empty.is_valid


def test_oversized_record_trimmed_in_cookie():
    store = AuthStore(token=make_token(), record={"id": "u", "email": "e", "bio": "x" * 5000})
    restored = AuthStore()
    restored.load_from_cookie(store.export_cookie_value())
    assert restored.record["id"] == "u"
    assert "bio" not in restored.record


def test_list_result_defaults():
    result = ListResult.from_payload({})
    assert result.items == []
    assert result.total_items == 0


@pytest.mark.asyncio
async def test_transport_failure_raises_backend_error():
    def _down(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    pb = BackendClient("http://pb.test", transport=httpx.MockTransport(_down))
    try:
        with pytest.raises(BackendError) as excinfo:
            await pb.collection("gas_reports").get_list(1, 1)
    finally:
        await pb.aclose()
    assert excinfo.value.status == 0


@pytest.mark.asyncio
async def test_http_error_carries_status_and_message(backend: FakePocketBase):
    backend.failing = {"gas_reports"}
    pb = backend.client()
    try:
        with pytest.raises(BackendError) as excinfo:
            await pb.collection("gas_reports").get_list(1, 1)
    finally:
        await pb.aclose()
    assert excinfo.value.status == 500
    assert excinfo.value.message == "gas_reports unavailable"


@pytest.mark.asyncio
async def test_restore_session_updates_stale_last_login(backend: FakePocketBase):
    backend.users["user1"]["last_login"] = "2020-01-01 00:00:00.000Z"
    pb = backend.client()
    try:
        session = await restore_session(pb, auth_cookie(backend.login()))
    finally:
        await pb.aclose()
    assert session.authenticated
    assert backend.updates and backend.updates[0][0] == "user1"
    assert session.user["last_login"] != "2020-01-01 00:00:00.000Z"


@pytest.mark.asyncio
async def test_restore_session_keeps_recent_last_login(backend: FakePocketBase):
    recent = datetime.now(timezone.utc).isoformat()
    backend.users["user1"]["last_login"] = recent
    pb = backend.client()
    try:
        session = await restore_session(pb, auth_cookie(backend.login()))
    finally:
        await pb.aclose()
    assert session.authenticated
    assert backend.updates == []


@pytest.mark.asyncio
async def test_restore_session_rejected_token_clears_store(backend: FakePocketBase):
    pb = backend.client()
    try:
        # 期限内だがサーバ側で無効
        session = await restore_session(pb, auth_cookie(make_token()))
        assert not session.authenticated
        assert pb.auth_store.token == ""
    finally:
        await pb.aclose()


@pytest.mark.parametrize(
    "user, expected",
    [
        ({"role": "admin"}, True),
        ({"roles": ["viewer", "admin"]}, True),
        ({"expand": {"roles": [{"name": "admin"}]}}, True),
        ({"role": "surveyor", "roles": ["viewer"]}, False),
        (None, False),
    ],
)
def test_is_admin_user(user, expected):
    assert is_admin_user(user) is expected


@pytest.mark.asyncio
async def test_restore_session_with_non_object_record(backend: FakePocketBase):
    token = backend.login()

    def _handle(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/auth-refresh"):
            return httpx.Response(200, json={"token": token, "record": "user1"})
        return backend.handle(request)

    pb = BackendClient("http://pb.test", transport=httpx.MockTransport(_handle))
    try:
        session = await restore_session(pb, auth_cookie(token))
    finally:
        await pb.aclose()
    assert session.authenticated
    assert session.user == {}
    assert pb.auth_store.record is None
