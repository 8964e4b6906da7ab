"""HTTP gateway to the hosted relational service.

The service exposes each collection as ``/rest/v1/<collection>`` with
PostgREST-style query strings (``field=op.value``, ``order=``, ``limit=``)
and account endpoints under ``/auth/v1``.
"""

from collections.abc import Sequence
from typing import Any

import requests

from .gateway import Collection, Filter, GatewayError, Op, Order, Row, to_wire, wire_row
from .logging import get_logger
from .models import AuthSession

log = get_logger("rest")


def _literal(value: Any) -> str:
    value = to_wire(value)
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _quoted(value: Any) -> str:
    text = _literal(value)
    if any(ch in text for ch in ',()"\\ '):
        text = '"' + text.replace("\\", "\\\\").replace('"', '\\"') + '"'
    return text


def encode_filter(f: Filter) -> tuple[str, str]:
    """Encode one filter as a query-string pair."""
    if f.op == Op.IN:
        return f.field, f"in.({','.join(_quoted(v) for v in f.value)})"
    if f.op == Op.ILIKE:
        return f.field, f"ilike.*{_literal(f.value)}*"
    if f.value is None and f.op in (Op.EQ, Op.NEQ):
        return f.field, "is.null" if f.op == Op.EQ else "not.is.null"
    return f.field, f"{f.op.value}.{_literal(f.value)}"


def encode_order(order: Sequence[Order]) -> str:
    parts = []
    for o in order:
        direction = "desc" if o.descending else "asc"
        nulls = "nullsfirst" if o.effective_nulls_first else "nullslast"
        parts.append(f"{o.field}.{direction}.{nulls}")
    return ",".join(parts)


def _error_message(response: requests.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        for key in ("message", "msg", "error_description", "error"):
            if body.get(key):
                return str(body[key])
    return response.text or f"HTTP {response.status_code}"


class _ServiceClient:
    """Shared session, headers and error mapping for the hosted service."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        *,
        access_token: str | None = None,
        timeout: int = 30,
        session: requests.Session | None = None,
    ) -> None:
        self.base = base_url.rstrip("/")
        self.timeout = int(timeout)
        self.s = session or requests.Session()
        self.s.headers.update(
            {
                "apikey": api_key,
                "Authorization": f"Bearer {access_token or api_key}",
                "Accept": "application/json",
                "Content-Type": "application/json",
            }
        )

    def _url(self, path: str) -> str:
        return f"{self.base}{path}"

    def _request(self, method: str, path: str, **kwargs: Any) -> requests.Response:
        url = self._url(path)
        try:
            r = self.s.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            log.error(f"{method} {path} failed: {e}")
            raise GatewayError(f"Could not reach the household service: {e}") from e
        if r.status_code >= 400:
            message = _error_message(r)
            log.warning(f"{method} {path} -> {r.status_code}: {message}")
            raise GatewayError(message, status_code=r.status_code)
        return r

    @staticmethod
    def _json(r: requests.Response) -> Any:
        if not r.content:
            return None
        try:
            return r.json()
        except ValueError:
            return None


class RestGateway(_ServiceClient):
    """Data gateway speaking to the hosted service over HTTP."""

    def select(
        self,
        collection: Collection,
        filters: Sequence[Filter] = (),
        order: Sequence[Order] = (),
        limit: int | None = None,
        columns: Sequence[str] | None = None,
    ) -> list[Row]:
        params: list[tuple[str, str]] = [("select", ",".join(columns) if columns else "*")]
        params.extend(encode_filter(f) for f in filters)
        if order:
            params.append(("order", encode_order(order)))
        if limit is not None:
            params.append(("limit", str(int(limit))))

        r = self._request("GET", f"/rest/v1/{collection.value}", params=params)
        return list(self._json(r) or [])

    def insert(self, collection: Collection, rows: Sequence[Row]) -> list[Row]:
        r = self._request(
            "POST",
            f"/rest/v1/{collection.value}",
            json=[wire_row(row) for row in rows],
            headers={"Prefer": "return=representation"},
        )
        return list(self._json(r) or [])

    def update(self, collection: Collection, patch: Row, filters: Sequence[Filter]) -> None:
        if not filters:
            raise GatewayError("Refusing to update without filters")
        self._request(
            "PATCH",
            f"/rest/v1/{collection.value}",
            params=[encode_filter(f) for f in filters],
            json=wire_row(patch),
        )

    def delete(self, collection: Collection, filters: Sequence[Filter]) -> None:
        if not filters:
            raise GatewayError("Refusing to delete without filters")
        self._request(
            "DELETE",
            f"/rest/v1/{collection.value}",
            params=[encode_filter(f) for f in filters],
        )


class RestAuth(_ServiceClient):
    """Account operations; the hosted service owns the actual auth flow."""

    def sign_up(self, email: str, password: str, name: str | None = None) -> None:
        payload: dict[str, Any] = {"email": email, "password": password}
        if name:
            payload["data"] = {"name": name}
        self._request("POST", "/auth/v1/signup", json=payload)
        log.info(f"Signed up {email}")

    def sign_in(self, email: str, password: str) -> AuthSession:
        r = self._request(
            "POST",
            "/auth/v1/token",
            params={"grant_type": "password"},
            json={"email": email, "password": password},
        )
        body = self._json(r) or {}
        user = body.get("user") or {}
        if not body.get("access_token") or not user.get("id"):
            raise GatewayError("Sign-in response did not include a session")
        return AuthSession(
            access_token=body["access_token"],
            refresh_token=body.get("refresh_token"),
            user_id=user["id"],
            email=user.get("email", email),
        )

    def update_password(self, new_password: str) -> None:
        self._request("PUT", "/auth/v1/user", json={"password": new_password})

    def sign_out(self) -> None:
        self._request("POST", "/auth/v1/logout")
