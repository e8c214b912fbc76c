from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal, Mapping, Sequence

import httpx

from listing_composer.core.config import settings

HttpMethod = Literal["GET", "POST", "PUT", "PATCH", "DELETE"]

# (field name, (filename, content, content type))
FileField = tuple[str, tuple[str, bytes, str]]


@dataclass(frozen=True)
class HttpResult:
    ok: bool
    status_code: int | None
    detail: dict[str, Any]

    error_code: str | None = None
    error_message: str | None = None

    elapsed_ms: int | None = None

    @property
    def data(self) -> dict[str, Any]:
        """The `data` envelope of a marketplace response (empty when absent)."""
        data = self.detail.get("data")
        return data if isinstance(data, dict) else {}


def _is_json_response(resp: httpx.Response) -> bool:
    ct = (resp.headers.get("content-type") or "").lower()
    return "application/json" in ct or ct.endswith("+json")


def _cap_text(s: str, *, max_chars: int) -> str:
    if len(s) <= max_chars:
        return s
    return s[:max_chars] + f"...(truncated, {len(s)} chars)"


class MarketplaceHttpClient:
    """
    Thin wrapper over the marketplace REST API.

    - One AsyncClient per session, rooted at `base_url`.
    - Never raises for HTTP or transport errors; callers inspect HttpResult.
    - `transport` is injectable (httpx.MockTransport in tests).
    """

    def __init__(
        self,
        *,
        base_url: str | None = None,
        timeout_seconds: float | None = None,
        auth_token: str | None = None,
        max_response_body_chars: int = 20_000,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        headers = {"Accept": "application/json"}
        if auth_token:
            headers["Authorization"] = f"Bearer {auth_token}"
        self._max_body = max_response_body_chars
        self._client = httpx.AsyncClient(
            base_url=(base_url or settings.api_base_url).rstrip("/"),
            timeout=httpx.Timeout(timeout_seconds or settings.api_timeout_seconds),
            headers=headers,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "MarketplaceHttpClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def request_json(
        self,
        *,
        method: HttpMethod,
        path: str,
        params: Mapping[str, str] | None = None,
        json_body: dict[str, Any] | None = None,
        data: Mapping[str, str] | None = None,
        files: Sequence[FileField] | None = None,
    ) -> HttpResult:
        try:
            resp = await self._client.request(
                method=method,
                url=path,
                params=dict(params or {}),
                json=json_body,
                data=dict(data) if data else None,
                files=list(files) if files else None,
            )
        except httpx.TimeoutException as e:
            return HttpResult(
                ok=False,
                status_code=None,
                detail={"error": "timeout"},
                error_code="TIMEOUT",
                error_message=str(e) or "request timed out",
            )
        except httpx.RequestError as e:
            # DNS errors, connection refused, TLS, etc.
            return HttpResult(
                ok=False,
                status_code=None,
                detail={"error": "request_error"},
                error_code="REQUEST_ERROR",
                error_message=str(e) or "request failed",
            )

        detail: dict[str, Any]
        if _is_json_response(resp):
            try:
                parsed = resp.json()
                detail = parsed if isinstance(parsed, dict) else {"data": parsed}
            except ValueError:
                detail = {"raw": _cap_text(resp.text, max_chars=self._max_body)}
        else:
            detail = {
                "raw": _cap_text(resp.text, max_chars=self._max_body),
                "content_type": resp.headers.get("content-type"),
            }

        try:
            elapsed_ms = int(resp.elapsed.total_seconds() * 1000)
        except RuntimeError:
            # elapsed is unset on responses that were never read from a network stream
            elapsed_ms = None

        if 200 <= resp.status_code < 300:
            return HttpResult(ok=True, status_code=resp.status_code, detail=detail, elapsed_ms=elapsed_ms)

        return HttpResult(
            ok=False,
            status_code=resp.status_code,
            detail=detail,
            error_code=detail.get("code") or f"HTTP_{resp.status_code}",
            error_message=detail.get("message") or f"HTTP {resp.status_code}",
            elapsed_ms=elapsed_ms,
        )

    # helpers
    async def get_json(self, path: str, *, params: Mapping[str, str] | None = None) -> HttpResult:
        return await self.request_json(method="GET", path=path, params=params)

    async def post_json(self, path: str, *, json_body: dict[str, Any] | None = None) -> HttpResult:
        return await self.request_json(method="POST", path=path, json_body=json_body)

    async def put_json(self, path: str, *, json_body: dict[str, Any] | None = None) -> HttpResult:
        return await self.request_json(method="PUT", path=path, json_body=json_body)

    async def patch_json(self, path: str, *, json_body: dict[str, Any] | None = None) -> HttpResult:
        return await self.request_json(method="PATCH", path=path, json_body=json_body)

    async def delete(self, path: str) -> HttpResult:
        return await self.request_json(method="DELETE", path=path)

    async def post_multipart(
        self,
        path: str,
        *,
        files: Sequence[FileField],
        data: Mapping[str, str] | None = None,
    ) -> HttpResult:
        return await self.request_json(method="POST", path=path, files=files, data=data)
