"""
REST Remote Store Module.

Remote document store adapter speaking to a per-tenant REST document API:

- ``GET    {base}/tenants/{tenant}/{collection}``           list documents
- ``GET    {base}/tenants/{tenant}/{collection}?limit=1``   existence probe
- ``GET    {base}/tenants/{tenant}/{collection}/{id}``      get one (404 -> None)
- ``PUT    {base}/tenants/{tenant}/{collection}/{id}``      upsert
- ``PATCH  {base}/tenants/{tenant}/{collection}/{id}``      partial update
- ``DELETE {base}/tenants/{tenant}/{collection}/{id}``      delete
- ``POST   {base}/tenants/{tenant}/batch``                  atomic batch commit

List endpoints answer ``{"documents": [...]}``; each document carries its
key as ``id``. The adapter does not retry: a failed call raises
RemoteRequestError and the caller decides what that means.
"""

import json
import logging
from datetime import date, datetime
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import aiohttp
from pydantic import BaseModel, Field

from lineageweaver.config.settings import settings
from lineageweaver.sync.exceptions import RemoteRequestError
from lineageweaver.sync.models import EntityKind, Identity, MAX_BATCH_OPERATIONS, Record
from lineageweaver.sync.stores.base import (
    BatchOperation,
    RemoteStore,
    WriteBatch,
    check_identity,
)

logger = logging.getLogger(__name__)


def _json_default(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


class RemoteStoreConfig(BaseModel):
    """REST remote store configuration."""
    base_url: str
    api_token: Optional[str] = None

    # Request settings
    timeout: int = Field(default=30, ge=1)
    verify_ssl: bool = True
    pool_size: int = Field(default=10, ge=1)
    max_batch_operations: int = Field(default=MAX_BATCH_OPERATIONS, ge=1)

    # Custom headers
    headers: Dict[str, str] = Field(default_factory=dict)

    @classmethod
    def from_settings(cls) -> "RemoteStoreConfig":
        return cls(
            base_url=settings.remote.remote_base_url,
            api_token=settings.remote.remote_api_token,
            timeout=settings.remote.remote_timeout,
            verify_ssl=settings.remote.remote_verify_ssl,
        )


class HTTPWriteBatch(WriteBatch):
    """Write batch committed with one POST to the batch endpoint."""

    def __init__(self, store: "HTTPRemoteStore", tenant_id: str, max_operations: int):
        super().__init__(tenant_id, max_operations)
        self._store = store

    async def _commit(self, operations: List[BatchOperation]) -> None:
        await self._store._request(
            "POST",
            f"{self._store._tenant_path(self.tenant_id)}/batch",
            body={"operations": [operation.to_dict() for operation in operations]},
        )
        self._store._stats["total_commits"] += 1
        self._store._record_write(len(operations))


class HTTPRemoteStore(RemoteStore):
    """
    Remote document store over HTTP.

    The aiohttp session is opened lazily on first use and closed by close().
    """

    def __init__(self, config: Optional[RemoteStoreConfig] = None):
        super().__init__()
        self.config = config or RemoteStoreConfig.from_settings()
        self.max_batch_operations = self.config.max_batch_operations
        self._session: Optional[aiohttp.ClientSession] = None

    def _headers(self) -> Dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "User-Agent": "Lineageweaver-Sync/1.0",
        }
        if self.config.api_token:
            headers["Authorization"] = f"Bearer {self.config.api_token}"
        headers.update(self.config.headers)
        return headers

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(total=self.config.timeout)
            connector = aiohttp.TCPConnector(
                limit=self.config.pool_size,
                ssl=None if self.config.verify_ssl else False,
            )
            self._session = aiohttp.ClientSession(
                headers=self._headers(),
                timeout=timeout,
                connector=connector,
            )
            logger.info(f"Opened remote store session: {self.config.base_url}")
        return self._session

    async def close(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()
            logger.info("Closed remote store session")
        self._session = None

    def _tenant_path(self, tenant_id: str) -> str:
        return f"/tenants/{quote(str(tenant_id), safe='')}"

    def _document_path(self, tenant_id: str, kind: EntityKind, identity: Optional[Identity] = None) -> str:
        path = f"{self._tenant_path(tenant_id)}/{kind.value}"
        if identity is not None:
            path += f"/{quote(str(identity), safe='')}"
        return path

    async def _request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        body: Optional[Dict[str, Any]] = None,
        allow_not_found: bool = False,
    ) -> Optional[Dict[str, Any]]:
        """Make one HTTP request and decode its JSON body."""
        session = await self._get_session()
        url = self.config.base_url.rstrip("/") + path
        data = json.dumps(body, default=_json_default) if body is not None else None

        try:
            async with session.request(method, url, params=params, data=data) as response:
                if response.status == 404 and allow_not_found:
                    return None
                if response.status >= 400:
                    text = await response.text()
                    raise RemoteRequestError(text or response.reason or "error", response.status, url)
                if response.status == 204:
                    return {}
                content_type = response.headers.get("Content-Type", "")
                if "application/json" in content_type:
                    return await response.json()
                return {}
        except aiohttp.ClientError as e:
            error = RemoteRequestError(str(e), url=url)
            self._record_error(error)
            raise error from e
        except RemoteRequestError as e:
            self._record_error(e)
            raise

    async def get(self, tenant_id: str, kind: EntityKind, identity: Identity) -> Optional[Record]:
        result = await self._request(
            "GET", self._document_path(tenant_id, kind, identity), allow_not_found=True
        )
        self._record_read()
        if result is None:
            return None
        return {"id": str(identity), **result}

    async def list_all(self, tenant_id: str, kind: EntityKind) -> List[Record]:
        result = await self._request("GET", self._document_path(tenant_id, kind)) or {}
        documents = result.get("documents", [])
        self._record_read(len(documents))
        return documents

    async def set(self, tenant_id: str, kind: EntityKind, identity: Identity, data: Record) -> None:
        check_identity(kind, identity, data)
        await self._request(
            "PUT",
            self._document_path(tenant_id, kind, identity),
            body={**data, "localId": identity},
        )
        self._record_write()

    async def update(self, tenant_id: str, kind: EntityKind, identity: Identity, patch: Record) -> None:
        await self._request("PATCH", self._document_path(tenant_id, kind, identity), body=patch)
        self._record_write()

    async def delete(self, tenant_id: str, kind: EntityKind, identity: Identity) -> None:
        await self._request("DELETE", self._document_path(tenant_id, kind, identity))
        self._record_write()

    async def exists_any(self, tenant_id: str, kind: EntityKind) -> bool:
        result = await self._request(
            "GET", self._document_path(tenant_id, kind), params={"limit": 1}
        ) or {}
        self._record_read()
        return len(result.get("documents", [])) > 0

    def batch(self, tenant_id: str) -> WriteBatch:
        return HTTPWriteBatch(self, tenant_id, self.max_batch_operations)


__all__ = [
    "RemoteStoreConfig",
    "HTTPRemoteStore",
    "HTTPWriteBatch",
]
