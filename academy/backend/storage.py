"""File storage collaborator for submission files.

Paths are opaque, caller-chosen strings. ``HttpObjectStorage`` talks to an
object-storage REST endpoint; ``MemoryStorage`` keeps bytes in a dict for
demo mode.
"""

import asyncio
import logging
from typing import Dict, Optional

import httpx

from academy.data.errors import FatalError, NotFoundError, TransientError, ValidationError
from academy.data.repository import Result

logger = logging.getLogger("storage")


class MemoryStorage:

    def __init__(self):
        self.objects: Dict[str, bytes] = {}

    async def upload(self, path: str, data: bytes) -> Result:
        await asyncio.sleep(0)
        if path in self.objects:
            return Result(None, ValidationError(f"object {path!r} already exists", code="DuplicatePath"))
        self.objects[path] = bytes(data)
        return Result(path)

    async def download(self, path: str) -> Result:
        await asyncio.sleep(0)
        if path not in self.objects:
            return Result(None, NotFoundError("object", path))
        return Result(self.objects[path])


class HttpObjectStorage:

    def __init__(self, base_url: str, bucket: str, api_key: Optional[str] = None, timeout: float = 30.0,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = base_url.rstrip("/")
        self.bucket = bucket
        self.timeout = timeout
        self.transport = transport
        self.headers = {"authorization": f"Bearer {api_key}"} if api_key else {}

    def _url(self, path: str) -> str:
        return f"{self.base_url}/object/{self.bucket}/{path.lstrip('/')}"

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(headers=self.headers, timeout=self.timeout, transport=self.transport)

    async def upload(self, path: str, data: bytes) -> Result:
        try:
            async with self._client() as client:
                res = await client.post(self._url(path), content=data,
                                        headers={"content-type": "application/octet-stream"})
        except httpx.RequestError as e:
            logger.error(f"Storage unreachable uploading {path}: {e}")
            return Result(None, TransientError(f"storage unreachable: {e.__class__.__name__}"))

        if res.status_code == 409:
            return Result(None, ValidationError(f"object {path!r} already exists", code="DuplicatePath"))
        if res.status_code >= 500:
            logger.warning(f"Storage returned {res.status_code} uploading {path}")
            return Result(None, TransientError(f"storage returned {res.status_code}"))
        if res.status_code >= 400:
            logger.error(f"Storage rejected upload of {path}: {res.status_code} {res.text}")
            return Result(None, FatalError(f"storage rejected upload with {res.status_code}"))
        return Result(path)

    async def download(self, path: str) -> Result:
        try:
            async with self._client() as client:
                res = await client.get(self._url(path))
        except httpx.RequestError as e:
            logger.error(f"Storage unreachable downloading {path}: {e}")
            return Result(None, TransientError(f"storage unreachable: {e.__class__.__name__}"))

        if res.status_code == 404:
            return Result(None, NotFoundError("object", path))
        if res.status_code >= 500:
            return Result(None, TransientError(f"storage returned {res.status_code}"))
        if res.status_code >= 400:
            return Result(None, FatalError(f"storage rejected download with {res.status_code}"))
        return Result(res.content)
