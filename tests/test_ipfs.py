"""Tests for the IPFS blob store client."""
from unittest.mock import AsyncMock

import httpx
import pytest

from insurechain.core.exceptions import BlobStoreError, ValidationError
from insurechain.storage import IpfsBlobStore

IPFS_URL = "http://ipfs.test:5001"
CID = "bafkreihdwdcefgh4dqkjv67uzcmw7ojee6xedzdetojuzjevtenxquvyku"


def ipfs_response(status_code: int = 200, **kwargs) -> httpx.Response:
    return httpx.Response(status_code, request=httpx.Request("POST", f"{IPFS_URL}/api/v0/x"), **kwargs)


def _store(client: AsyncMock, max_bytes: int = 1024) -> IpfsBlobStore:
    return IpfsBlobStore(api_url=IPFS_URL, pin=True, max_bytes=max_bytes, client=client)


@pytest.mark.asyncio
async def test_put_returns_cid():
    client = AsyncMock()
    client.post.return_value = ipfs_response(json={"Name": "vc.json", "Hash": CID, "Size": "12"})
    cid = await _store(client).put(b'{"a": 1}', filename="vc.json")

    assert cid == CID
    assert client.post.call_args.args[0] == "/api/v0/add"
    assert client.post.call_args.kwargs["params"] == {"pin": "true", "cid-version": "1"}
    assert client.post.call_args.kwargs["files"] == {"file": ("vc.json", b'{"a": 1}')}


@pytest.mark.asyncio
async def test_put_rejects_oversized_data():
    client = AsyncMock()
    with pytest.raises(ValidationError) as exc_info:
        await _store(client, max_bytes=4).put(b"12345")
    assert exc_info.value.code == "UPLOAD_TOO_LARGE"
    client.post.assert_not_awaited()


@pytest.mark.asyncio
async def test_put_without_hash():
    client = AsyncMock()
    client.post.return_value = ipfs_response(json={"Name": "x"})
    with pytest.raises(BlobStoreError):
        await _store(client).put(b"x")


@pytest.mark.asyncio
async def test_get_returns_bytes():
    client = AsyncMock()
    client.post.return_value = ipfs_response(content=b"\x00\x01evidence")
    data = await _store(client).get(CID)

    assert data == b"\x00\x01evidence"
    assert client.post.call_args.kwargs["params"] == {"arg": CID}


@pytest.mark.asyncio
async def test_get_http_error():
    client = AsyncMock()
    client.post.return_value = ipfs_response(status_code=500, content=b"merkledag: not found")
    with pytest.raises(BlobStoreError) as exc_info:
        await _store(client).get(CID)
    assert exc_info.value.status_code == 502


@pytest.mark.asyncio
async def test_get_timeout():
    client = AsyncMock()
    client.post.side_effect = httpx.ReadTimeout("timed out")
    with pytest.raises(BlobStoreError):
        await _store(client).get(CID)


@pytest.mark.asyncio
async def test_get_oversized_content():
    client = AsyncMock()
    client.post.return_value = ipfs_response(content=b"x" * 10)
    with pytest.raises(BlobStoreError):
        await _store(client, max_bytes=4).get(CID)
