"""Blob store endpoints.

Uploads accept base64 or raw text. Downloads return UTF-8 text when the
content decodes as such, base64 otherwise.
"""
import base64
import binascii
import logging

from fastapi import APIRouter, Depends

from insurechain.api.models import FileContentResponse, FileUploadRequest, FileUploadResponse
from insurechain.core.exceptions import MissingField
from insurechain.orchestrator import Orchestrator, get_orchestrator

log = logging.getLogger(__name__)
router = APIRouter(prefix="/file", tags=["file"])

DEFAULT_FILENAME = "uploaded-file"


def decode_upload(data: str) -> bytes:
    """Strict base64 decode, falling back to the raw UTF-8 bytes."""
    try:
        return base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError):
        return data.encode("utf-8")


@router.post("/upload", response_model=FileUploadResponse)
async def upload_file(
    body: FileUploadRequest,
    orchestrator: Orchestrator = Depends(get_orchestrator),
) -> FileUploadResponse:
    if not body.data:
        raise MissingField("data")
    filename = body.filename or DEFAULT_FILENAME
    cid = await orchestrator.upload_file(decode_upload(body.data), filename)
    return FileUploadResponse(cid=cid, filename=filename)


@router.get("/{cid}", response_model=FileContentResponse)
async def get_file(
    cid: str,
    orchestrator: Orchestrator = Depends(get_orchestrator),
) -> FileContentResponse:
    content = await orchestrator.get_file(cid)
    try:
        return FileContentResponse(data=content.decode("utf-8"), encoding="utf-8")
    except UnicodeDecodeError:
        return FileContentResponse(data=base64.b64encode(content).decode("ascii"), encoding="base64")
