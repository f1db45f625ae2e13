"""Async HTTP client for the rpage API."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Mapping, Optional
from urllib.parse import urlencode

import httpx

from rpage.core.config import Settings, get_settings

from .cache import TTLCache

logger = logging.getLogger(__name__)

RUN_ENDPOINT = "/run-automation"
OUTPUTS_ENDPOINT = "/outputs"
OUTPUTS_DIRECT_ENDPOINT = "/outputs-direct"


class ApiError(RuntimeError):
    def __init__(self, message: str, *, status_code: Optional[int] = None, detail: Any = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.detail = detail


@dataclass(slots=True)
class OutputListing:
    files: list[dict[str, Any]] = field(default_factory=list)
    total: Optional[int] = None
    has_more: Optional[bool] = None


def normalize_listing(payload: Any) -> Optional[list[dict[str, Any]]]:
    """Accept ``{success, files: [...]}`` or a bare array; anything else yields None."""
    if isinstance(payload, dict) and payload.get("success") and isinstance(payload.get("files"), list):
        return list(payload["files"])
    if isinstance(payload, list):
        return list(payload)
    return None


def _error_detail(response: httpx.Response) -> Any:
    try:
        body = response.json()
    except ValueError:
        return response.text
    if isinstance(body, dict):
        return body.get("detail") or body.get("error") or body
    return body


class RpageClient:
    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        timeout: Optional[float] = None,
        cache: Optional[TTLCache] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        settings = settings or get_settings()
        self.timeout = timeout if timeout is not None else settings.client.request_timeout
        self.run_timeout = settings.client.run_timeout
        self.cache = cache if cache is not None else TTLCache(settings.client.cache_ttl)
        self._http = httpx.AsyncClient(
            base_url=base_url or settings.client.base_url,
            timeout=self.timeout,
            transport=transport,
            headers={"Content-Type": "application/json"},
        )

    async def __aenter__(self) -> "RpageClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    @staticmethod
    def cache_key(path: str, params: Optional[Mapping[str, Any]] = None) -> str:
        if not params:
            return path
        return f"{path}?{urlencode(sorted((key, value) for key, value in params.items() if value is not None))}"

    async def request(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            response = await self._http.request(method, path, **kwargs)
        except httpx.TimeoutException as exc:
            raise ApiError(f"Request to {path} timed out") from exc
        except httpx.HTTPError as exc:
            raise ApiError(f"Request to {path} failed: {exc}") from exc
        if response.is_error:
            detail = _error_detail(response)
            logger.error("HTTP error %s from %s: %s", response.status_code, path, detail)
            raise ApiError(
                f"HTTP error {response.status_code}: {detail}",
                status_code=response.status_code,
                detail=detail,
            )
        return response.json()

    async def get_json(self, path: str, params: Optional[Mapping[str, Any]] = None, *, use_cache: bool = True) -> Any:
        key = self.cache_key(path, params)
        if use_cache:
            cached = self.cache.get(key)
            if cached is not None:
                return cached
        data = await self.request("GET", path, params=dict(params) if params else None)
        if use_cache:
            self.cache.set(key, data)
        return data

    async def post_json(self, path: str, payload: Any = None) -> Any:
        return await self.request("POST", path, json=payload)

    async def delete(self, path: str) -> Any:
        try:
            return await self.request("DELETE", path)
        finally:
            cleared = self.cache.invalidate_matching("output")
            logger.debug("Cleared %s cached output responses", cleared)

    def clear_outputs_cache(self) -> int:
        return self.cache.invalidate_matching("output")

    async def list_outputs(self, page: int = 1, limit: int = 30, skip: int = 0, sort: str = "desc") -> OutputListing:
        params = {"page": page, "limit": limit, "skip": skip, "sort": sort}
        payload = await self.get_json(OUTPUTS_ENDPOINT, params)
        files = normalize_listing(payload)
        if files is None:
            logger.info("Unexpected listing shape from %s, trying %s", OUTPUTS_ENDPOINT, OUTPUTS_DIRECT_ENDPOINT)
            files = normalize_listing(await self.get_json(OUTPUTS_DIRECT_ENDPOINT, params)) or []
            return OutputListing(files=files)
        if isinstance(payload, dict):
            return OutputListing(files=files, total=payload.get("total"), has_more=payload.get("hasMore"))
        return OutputListing(files=files)

    async def list_outputs_by_type(self, output_type: str) -> list[dict[str, Any]]:
        payload = await self.get_json(f"{OUTPUTS_ENDPOINT}/type/{output_type}")
        return normalize_listing(payload) or []

    async def get_output(self, output_id: str) -> dict[str, Any]:
        payload = await self.get_json(f"{OUTPUTS_ENDPOINT}/{output_id}")
        return payload.get("data") if isinstance(payload, dict) else payload

    async def delete_output(self, output_id: str) -> Any:
        return await self.delete(f"{OUTPUTS_ENDPOINT}/{output_id}")

    async def cleanup_outputs(self) -> dict[str, Any]:
        payload = await self.post_json("/maintenance/cleanup")
        self.clear_outputs_cache()
        return payload.get("data", {}) if isinstance(payload, dict) else {}

    async def list_automations(self) -> list[dict[str, Any]]:
        payload = await self.get_json("/automations", use_cache=False)
        return payload.get("data", []) if isinstance(payload, dict) else payload

    async def list_logs(self, page: int = 1, limit: int = 10) -> dict[str, Any]:
        return await self.get_json("/logs", {"page": page, "limit": limit}, use_cache=False)

    async def get_settings(self) -> dict[str, Any]:
        payload = await self.get_json("/settings", use_cache=False)
        return payload.get("data", {}) if isinstance(payload, dict) else {}

    async def save_settings(self, values: Mapping[str, Any]) -> dict[str, Any]:
        payload = await self.post_json("/settings", dict(values))
        return payload.get("data", {}) if isinstance(payload, dict) else {}

    @asynccontextmanager
    async def open_run_stream(self, automation_id: str, name: str, script: str) -> AsyncIterator[httpx.Response]:
        """POST a run and yield the streaming response. No read timeout applies while streaming."""
        request = self._http.build_request(
            "POST",
            RUN_ENDPOINT,
            json={"id": automation_id, "name": name, "script": script},
            headers={"Accept": "text/event-stream"},
            timeout=httpx.Timeout(self.timeout, read=None),
        )
        try:
            response = await self._http.send(request, stream=True)
        except httpx.HTTPError as exc:
            raise ApiError(f"Request to {RUN_ENDPOINT} failed: {exc}") from exc
        try:
            if response.is_error:
                await response.aread()
                detail = _error_detail(response)
                raise ApiError(
                    f"HTTP error {response.status_code}: {detail}",
                    status_code=response.status_code,
                    detail=detail,
                )
            yield response
        finally:
            await response.aclose()
