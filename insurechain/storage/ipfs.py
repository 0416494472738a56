"""IPFS blob store client.

Uses the IPFS HTTP RPC API:
- POST /api/v0/add  (multipart upload, returns {"Hash": cid})
- POST /api/v0/cat?arg=<cid>  (raw bytes)

Enforces a size limit on both directions.
"""
import logging
from typing import Optional, Protocol

import httpx

from insurechain.config import IPFS_API_URL, IPFS_PIN, IPFS_TIMEOUT_SECONDS, MAX_UPLOAD_BYTES
from insurechain.core.exceptions import BlobStoreError, ValidationError

log = logging.getLogger(__name__)


class BlobStore(Protocol):
    """Interface consumed by the orchestrator."""

    async def put(self, data: bytes, filename: str = "blob") -> str: ...

    async def get(self, cid: str) -> bytes: ...

    async def close(self) -> None: ...


class IpfsBlobStore:
    """Content-addressed put/get over the IPFS HTTP API."""

    def __init__(
        self,
        api_url: str = IPFS_API_URL,
        timeout: float = IPFS_TIMEOUT_SECONDS,
        pin: bool = IPFS_PIN,
        max_bytes: int = MAX_UPLOAD_BYTES,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self._api_url = api_url.rstrip("/")
        self._pin = pin
        self._max_bytes = max_bytes
        self._client = client or httpx.AsyncClient(base_url=self._api_url, timeout=timeout)

    async def put(self, data: bytes, filename: str = "blob") -> str:
        """Upload ``data`` and return its CID.

        Raises:
            ValidationError: Data exceeds the size limit.
            BlobStoreError: Upload failed.
        """
        if len(data) > self._max_bytes:
            raise ValidationError(
                f"Upload of {len(data)} bytes exceeds limit of {self._max_bytes} bytes",
                code="UPLOAD_TOO_LARGE",
            )
        try:
            response = await self._client.post(
                "/api/v0/add",
                params={"pin": str(self._pin).lower(), "cid-version": "1"},
                files={"file": (filename, data)},
            )
            response.raise_for_status()
            cid = response.json().get("Hash")
        except httpx.TimeoutException:
            raise BlobStoreError("Timeout uploading to IPFS")
        except httpx.HTTPStatusError as e:
            raise BlobStoreError(f"IPFS add failed: HTTP {e.response.status_code}")
        except httpx.RequestError as e:
            raise BlobStoreError(f"IPFS unreachable: {e}")
        except ValueError as e:
            raise BlobStoreError(f"IPFS add returned invalid JSON: {e}")

        if not cid:
            raise BlobStoreError("IPFS add returned no CID")
        log.info(f"Stored {len(data)} bytes at {cid}", extra={"cid": cid})
        return cid

    async def get(self, cid: str) -> bytes:
        """Fetch the bytes stored at ``cid``.

        Raises:
            BlobStoreError: Fetch failed or content exceeds the size limit.
        """
        try:
            response = await self._client.post("/api/v0/cat", params={"arg": cid})
            response.raise_for_status()
        except httpx.TimeoutException:
            raise BlobStoreError(f"Timeout fetching {cid} from IPFS")
        except httpx.HTTPStatusError as e:
            raise BlobStoreError(f"IPFS cat {cid} failed: HTTP {e.response.status_code}")
        except httpx.RequestError as e:
            raise BlobStoreError(f"IPFS unreachable: {e}")

        content = response.content
        if len(content) > self._max_bytes:
            raise BlobStoreError(
                f"Content at {cid} is {len(content)} bytes, exceeds limit of {self._max_bytes} bytes"
            )
        return content

    async def close(self) -> None:
        await self._client.aclose()


_blob_store: Optional[IpfsBlobStore] = None


def get_blob_store() -> IpfsBlobStore:
    """Get or create the blob store singleton."""
    global _blob_store
    if _blob_store is None:
        _blob_store = IpfsBlobStore()
    return _blob_store


async def close_blob_store() -> None:
    """Close the blob store singleton."""
    global _blob_store
    if _blob_store is not None:
        await _blob_store.close()
        _blob_store = None


def reset_blob_store() -> None:
    """Reset the singleton without closing (for testing)."""
    global _blob_store
    _blob_store = None
