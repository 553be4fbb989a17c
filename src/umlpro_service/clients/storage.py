"""Object storage client for the Supabase Storage REST API.

Calls return a ``StorageResult`` (data, error) pair instead of raising, so the
caller decides how to compensate when ``error`` is set.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import httpx
import structlog

from umlpro_service.errors import ExternalServiceError
from umlpro_service.settings import settings

log = structlog.get_logger(__name__)


@dataclass
class StorageResult:
    data: Any = None
    error: ExternalServiceError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def raise_for_error(self) -> Any:
        if self.error is not None:
            raise self.error
        return self.data


class StorageClient:
    def __init__(
        self,
        base_url: str | None = None,
        service_key: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = (base_url or settings.storage_url).rstrip("/")
        self._service_key = service_key if service_key is not None else settings.storage_service_key
        self._timeout = timeout or settings.external_timeout_seconds
        self._transport = transport

    def _headers(self) -> dict[str, str]:
        if self._service_key:
            return {"Authorization": f"Bearer {self._service_key}", "apikey": self._service_key}
        return {}

    async def _request(self, method: str, path: str, **kwargs: Any) -> StorageResult:
        try:
            async with httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout,
                transport=self._transport,
                headers=self._headers(),
            ) as client:
                resp = await client.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            log.warning("storage_transport_error", method=method, path=path, error=str(exc))
            return StorageResult(error=ExternalServiceError(f"Storage transport error: {exc}"))

        if resp.is_error:
            log.warning("storage_error", method=method, path=path, status=resp.status_code)
            return StorageResult(
                error=ExternalServiceError(f"Storage error: {resp.status_code} {resp.text}")
            )

        content_type = resp.headers.get("content-type", "")
        if content_type.startswith("application/json"):
            return StorageResult(data=resp.json())
        return StorageResult(data=resp.content)

    # -- buckets ------------------------------------------------------------

    async def bucket_exists(self, name: str) -> bool:
        result = await self._request("GET", f"/bucket/{name}")
        return result.ok

    async def create_bucket(self, name: str) -> StorageResult:
        if not name:
            raise ValueError("Bucket name is required")
        return await self._request("POST", "/bucket", json={"id": name, "name": name, "public": False})

    async def delete_bucket(self, name: str) -> StorageResult:
        emptied = await self._request("POST", f"/bucket/{name}/empty")
        if not emptied.ok:
            return emptied
        return await self._request("DELETE", f"/bucket/{name}")

    # -- objects ------------------------------------------------------------

    async def list_files(self, bucket: str, prefix: str = "", search: str | None = None) -> StorageResult:
        body: dict[str, Any] = {"prefix": prefix, "limit": 1000}
        if search:
            body["search"] = search
        return await self._request("POST", f"/object/list/{bucket}", json=body)

    async def file_exists(self, bucket: str, path: str) -> bool:
        if not bucket:
            raise ValueError("Bucket name is required")
        if not path:
            raise ValueError("File name is required")
        folder, _, name = path.rpartition("/")
        result = await self.list_files(bucket, prefix=folder, search=name)
        if not result.ok:
            return False
        return any(item.get("name") == name for item in result.data or [])

    async def upload_file(
        self, bucket: str, path: str, content: bytes, mime_type: str | None = None
    ) -> StorageResult:
        if await self.file_exists(bucket, path):
            return StorageResult(
                error=ExternalServiceError(f"File '{path}' already exists in bucket '{bucket}'")
            )
        return await self._request(
            "POST",
            f"/object/{bucket}/{path}",
            content=content,
            headers={
                "Content-Type": mime_type or "application/octet-stream",
                "cache-control": "3600",
                "x-upsert": "false",
            },
        )

    async def get_file(self, bucket: str, path: str) -> StorageResult:
        return await self._request("GET", f"/object/{bucket}/{path}")

    async def move_file(self, bucket: str, source: str, destination: str) -> StorageResult:
        return await self._request(
            "POST",
            "/object/move",
            json={"bucketId": bucket, "sourceKey": source, "destinationKey": destination},
        )

    async def delete_file(self, bucket: str, path: str) -> StorageResult:
        return await self._request("DELETE", f"/object/{bucket}", json={"prefixes": [path]})
