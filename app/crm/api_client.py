from __future__ import annotations

import json
import logging
import time
import urllib.error
import urllib.parse
import urllib.request
from dataclasses import dataclass, replace
from typing import Any

logger = logging.getLogger(__name__)


class ApiError(RuntimeError):
    def __init__(self, message: str, *, status: int | None = None, payload: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.status = status
        self.payload = payload


class ApiUnauthorized(ApiError):
    pass


class ApiUnavailable(ApiError):
    pass


def _error_message(status: int, raw: bytes) -> tuple[str, Any]:
    """Pull a human message out of an API error body (JSON `message`/`error`, else text)."""
    text = raw.decode("utf-8", errors="ignore").strip()
    payload: Any = None
    try:
        payload = json.loads(text) if text else None
    except ValueError:
        payload = None
    if isinstance(payload, dict):
        msg = payload.get("message") or payload.get("error")
        if isinstance(msg, list):
            msg = "; ".join(str(m) for m in msg)
        if msg:
            return str(msg), payload
    if text:
        return f"HTTP {status}: {text[:300]}", payload
    return f"HTTP {status}", payload


def _segment(value: Any) -> str:
    return urllib.parse.quote(str(value), safe="")


@dataclass(frozen=True)
class CrmApiClient:
    base_url: str
    token: str | None = None
    timeout_seconds: int = 30
    retries: int = 3

    def with_token(self, token: str | None) -> "CrmApiClient":
        return replace(self, token=token)

    def _headers(self, has_body: bool) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if has_body:
            headers["Content-Type"] = "application/json"
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def request_json(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        body: dict[str, Any] | None = None,
    ) -> Any:
        url = self.base_url.rstrip("/") + path
        if params:
            query = {k: v for k, v in params.items() if v is not None}
            if query:
                url += "?" + urllib.parse.urlencode(query)
        data = json.dumps(body).encode("utf-8") if body is not None else None

        # Mutations are sent exactly once.
        attempts = self.retries + 1 if method == "GET" else 1
        last_err: Exception | None = None
        for attempt in range(attempts):
            try:
                req = urllib.request.Request(url, data=data, method=method, headers=self._headers(data is not None))
                with urllib.request.urlopen(req, timeout=self.timeout_seconds) as resp:
                    raw = resp.read()
                    if not raw:
                        return None
                    try:
                        return json.loads(raw.decode("utf-8"))
                    except ValueError as e:
                        raise ApiError(f"Invalid JSON from API ({method} {path})") from e
            except urllib.error.HTTPError as e:
                try:
                    raw_err = e.read()
                except Exception:
                    raw_err = b""
                message, payload = _error_message(e.code, raw_err or b"")
                if e.code == 401:
                    raise ApiUnauthorized(message, status=401, payload=payload) from e
                if e.code == 429 and attempt + 1 < attempts:
                    time.sleep(min(2 * (attempt + 1), 10))
                    last_err = ApiError(message, status=429, payload=payload)
                    continue
                if e.code >= 500 and attempt + 1 < attempts:
                    logger.warning("API %s %s returned %s; retrying (attempt %s)", method, path, e.code, attempt + 1)
                    time.sleep(min(1 * (attempt + 1), 5))
                    last_err = ApiError(message, status=e.code, payload=payload)
                    continue
                raise ApiError(message, status=e.code, payload=payload) from e
            except urllib.error.URLError as e:
                last_err = e
                if attempt + 1 < attempts:
                    logger.warning("API %s %s unreachable (%s); retrying", method, path, e.reason)
                    time.sleep(min(1 * (attempt + 1), 5))
                continue
        if isinstance(last_err, ApiError):
            raise last_err
        raise ApiUnavailable(f"API request failed: {last_err}")

    # auth

    def login(self, *, email: str, password: str) -> dict[str, Any]:
        return self.request_json("POST", "/auth/login", body={"email": email, "password": password}) or {}

    def invite_user(self, payload: dict[str, Any]) -> dict[str, Any]:
        return self.request_json("POST", "/auth/invite", body=payload) or {}

    # customers

    def list_customers(self, params: dict[str, Any] | None = None) -> dict[str, Any]:
        return self.request_json("GET", "/customers", params=params) or {}

    def get_customer(self, customer_id: str) -> dict[str, Any]:
        return self.request_json("GET", f"/customers/{_segment(customer_id)}") or {}

    def get_customer_with_transactions(self, customer_id: str) -> dict[str, Any]:
        return self.request_json("GET", f"/customers/{_segment(customer_id)}/transactions") or {}

    # notes

    def list_notes(self, customer_id: str) -> list[dict[str, Any]]:
        j = self.request_json("GET", f"/customers/{_segment(customer_id)}/notes")
        if isinstance(j, dict):
            j = j.get("data")
        return j if isinstance(j, list) else []

    def create_note(self, customer_id: str, *, content: str) -> dict[str, Any]:
        return (
            self.request_json(
                "POST",
                f"/customers/{_segment(customer_id)}/notes",
                body={"content": content},
            )
            or {}
        )

    # refunds

    def create_refund(self, *, charge_id: str, reason: str) -> dict[str, Any]:
        return self.request_json("POST", "/refunds", body={"chargeId": charge_id, "reason": reason}) or {}

    # transactions

    def list_transactions(self, params: dict[str, Any] | None = None) -> dict[str, Any]:
        return self.request_json("GET", "/transactions", params=params) or {}

    def get_transaction(self, transaction_id: str) -> dict[str, Any]:
        return self.request_json("GET", f"/transactions/{_segment(transaction_id)}") or {}


def client_from_config(config: dict) -> CrmApiClient:
    return CrmApiClient(
        base_url=(config.get("API_URL") or "http://localhost:3000").strip(),
        timeout_seconds=int(config.get("API_TIMEOUT_SECONDS") or 30),
        retries=int(config.get("API_RETRIES") or 0),
    )


def init_api(app) -> None:
    app.extensions["crm_api"] = client_from_config(app.config)


def api_client() -> CrmApiClient:
    """
    Client bound to the signed-in user's token. Use inside request handlers.
    """
    from flask import current_app, g

    base = current_app.extensions["crm_api"]
    return base.with_token(getattr(g, "api_token", None))
