from __future__ import annotations

import logging
from typing import Any

import httpx

from .errors import ApiError, TransportError

logger = logging.getLogger(__name__)

QueryValue = str | int | bool | None | list[str] | list[int]
Query = dict[str, QueryValue]


def build_base_url(address: str) -> str:
    trimmed = address.strip().rstrip("/")
    if not trimmed:
        return ""
    if "://" in trimmed:
        return trimmed
    return f"http://{trimmed}"


def clean_query(query: Query | None) -> dict[str, Any]:
    """Drop ``None`` entries and stringify scalars the way the server expects."""

    cleaned: dict[str, Any] = {}
    for key, value in (query or {}).items():
        if value is None:
            continue
        if isinstance(value, list):
            items = [_query_scalar(v) for v in value if v is not None]
            if items:
                cleaned[key] = items
            continue
        cleaned[key] = _query_scalar(value)
    return cleaned


def _query_scalar(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class Soht2Client:
    """JSON client for the SOHT2 REST API.

    Credentials belong to the instance; pass the client explicitly to whatever
    needs to talk to the server.
    """

    def __init__(
        self,
        base_url: str,
        *,
        username: str | None = None,
        password: str | None = None,
        timeout_s: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.base_url = build_base_url(base_url)
        if not self.base_url:
            raise ValueError("missing base url")
        auth = httpx.BasicAuth(username, password or "") if username else None
        self._http = httpx.Client(
            base_url=self.base_url,
            auth=auth,
            timeout=timeout_s,
            transport=transport,
            headers={"Accept": "application/json"},
        )
        self.username = username

    def __enter__(self) -> Soht2Client:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def close(self) -> None:
        self._http.close()

    def get(self, path: str, query: Query | None = None) -> Any:
        return self._request("GET", path, query=query)

    def post(self, path: str, query: Query | None = None, body: Any = None) -> Any:
        return self._request("POST", path, query=query, body=body)

    def put(self, path: str, query: Query | None = None, body: Any = None) -> Any:
        return self._request("PUT", path, query=query, body=body)

    def delete(self, path: str, query: Query | None = None) -> Any:
        return self._request("DELETE", path, query=query)

    def _request(
        self,
        method: str,
        path: str,
        *,
        query: Query | None = None,
        body: Any = None,
    ) -> Any:
        params = clean_query(query)
        logger.debug("%s %s params=%s", method, path, params)
        try:
            response = self._http.request(
                method,
                path,
                params=params or None,
                json=body,
            )
        except httpx.TransportError as exc:
            raise TransportError(f"{type(exc).__name__}: {exc}", url=path) from exc
        if response.is_error:
            error = ApiError.from_response(response)
            logger.info("%s %s failed: %s", method, path, error.message)
            raise error
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            snippet = response.text[:240].strip()
            raise ApiError(
                status=response.status_code,
                message=f"non_json_response: {snippet}" if snippet else "non_json_response",
                path=path,
            ) from exc
