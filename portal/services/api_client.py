"""Marketplace API client — the single boundary to the REST backend.

Every screen in the portal reads and writes through this module. The
backend answers with a loose envelope that comes in several shapes:

    {"ok": true, "message": "...", "data": {...}, "existed": true}
    {"success": true, "data": {...}}
    {"verified": true}
    {"_id": "...", "domain": "..."}          (bare record)

ApiClient.request() folds all of them into one ApiResponse, and turns
every failure (network error, timeout, HTTP >= 400, ok=false) into an
ApiError. Callers never inspect raw bodies.

Usage:
    from flask import g

    resp = g.api.post("/websites", json={"domain": "example.com"})
    website_id = resp.record_id
"""

import logging
from dataclasses import dataclass, field
from typing import Any

import requests

logger = logging.getLogger(__name__)

GENERIC_ERROR = "An unexpected error occurred"


class ApiError(Exception):
    """Any failed backend call, as seen by the UI."""

    def __init__(self, message, status_code=None, payload=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload or {}


class SessionExpired(Exception):
    """Backend answered 401 to an authenticated call; the token is no longer valid.

    Not an ApiError: it passes through the services' `except ApiError`
    and reaches the app-level handler that ends the session.
    """

    def __init__(self, message="Unauthorized", payload=None):
        super().__init__(message)
        self.message = message
        self.status_code = 401
        self.payload = payload or {}


@dataclass
class ApiResponse:
    """Normalized success envelope."""

    ok: bool
    data: Any = None
    message: str | None = None
    status_code: int = 200
    payload: dict = field(default_factory=dict)

    @property
    def existed(self) -> bool:
        return bool(self.payload.get("existed", False))

    @property
    def next_step(self) -> str | None:
        return self.payload.get("nextStep")

    @property
    def pages(self) -> int:
        pagination = self.payload.get("pagination") or {}
        return int(pagination.get("pages") or 1)

    @property
    def record_id(self) -> str | None:
        """The `_id`/`id` of the returned record, wherever it was nested."""
        for candidate in (self.data, self.payload):
            if isinstance(candidate, dict):
                value = candidate.get("_id") or candidate.get("id")
                if value:
                    return str(value)
        return None

    @classmethod
    def from_body(cls, body, status_code=200):
        """Fold any of the backend's envelope shapes into one response.

        Raises:
            ApiError: If the envelope reports failure.
        """
        if not isinstance(body, dict):
            # Lists and scalars only come back from list endpoints.
            return cls(ok=True, data=body, status_code=status_code)
        if not body:
            # 204 / empty body on a 2xx
            return cls(ok=True, status_code=status_code)

        flags = [body.get(k) for k in ("ok", "success", "verified") if k in body]
        if flags:
            ok = any(flag is True for flag in flags)
        else:
            # No flag at all: a bare record is success, anything else is not.
            ok = bool(body.get("_id") or body.get("id"))

        message = body.get("message")
        if not ok:
            raise ApiError(
                message or body.get("error") or GENERIC_ERROR,
                status_code=status_code,
                payload=body,
            )

        data = body["data"] if "data" in body else body
        return cls(
            ok=True,
            data=data,
            message=message,
            status_code=status_code,
            payload=body,
        )


def format_api_error(error) -> str:
    """Turn any failure into the one user-facing string shown in the UI.

    Looks for a `message`, then an `error` field in the response body,
    then falls back to the exception text and finally a generic message.
    """
    payload = getattr(error, "payload", None) or {}
    if isinstance(payload, dict):
        if payload.get("message"):
            return str(payload["message"])
        if payload.get("error"):
            return str(payload["error"])
    text = getattr(error, "message", None) or str(error)
    return text or GENERIC_ERROR


class ApiClient:
    """Thin JSON-over-HTTP wrapper bound to one user's bearer token."""

    def __init__(self, base_url, token=None, timeout=10, session=None):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({
            "Content-Type": "application/json",
            "Accept": "application/json",
        })

    def _headers(self):
        if self.token:
            return {"Authorization": f"Bearer {self.token}"}
        return {}

    def request(self, method, path, json=None, params=None) -> ApiResponse:
        """Issue one call and normalize the result.

        Raises:
            SessionExpired: On HTTP 401 to a call carrying a token.
            ApiError: On transport failure, timeout, HTTP >= 400 or ok=false.
        """
        url = f"{self.base_url}/{path.lstrip('/')}"
        if params:
            params = {k: v for k, v in params.items() if v not in (None, "")}

        logger.info(f"API {method} {path}")
        try:
            resp = self.session.request(
                method,
                url,
                json=json,
                params=params or None,
                headers=self._headers(),
                timeout=self.timeout,
            )
        except requests.exceptions.Timeout:
            logger.warning(f"API timeout: {method} {path}")
            raise ApiError("The server took too long to respond. Please try again.")
        except requests.exceptions.RequestException as e:
            logger.warning(f"API request failed: {method} {path}: {e}")
            raise ApiError("Could not reach the server. Please check your connection.")

        try:
            body = resp.json()
        except ValueError:
            body = {}

        logger.info(f"API {method} {path} -> {resp.status_code}")
        payload = body if isinstance(body, dict) else {}

        if resp.status_code == 401 and self.token:
            raise SessionExpired(payload.get("message") or "Unauthorized", payload=payload)

        if resp.status_code >= 400:
            error = ApiError(
                f"Request failed with status code {resp.status_code}",
                status_code=resp.status_code,
                payload=payload,
            )
            logger.warning(
                f"API error {resp.status_code} on {method} {path}: "
                f"{format_api_error(error)}"
            )
            raise error

        return ApiResponse.from_body(body, status_code=resp.status_code)

    def get(self, path, params=None):
        return self.request("GET", path, params=params)

    def post(self, path, json=None):
        return self.request("POST", path, json=json if json is not None else {})

    def put(self, path, json=None):
        return self.request("PUT", path, json=json if json is not None else {})

    def delete(self, path):
        return self.request("DELETE", path)
