"""Content-addressed blob storage."""

from insurechain.storage.ipfs import (
    BlobStore,
    IpfsBlobStore,
    close_blob_store,
    get_blob_store,
    reset_blob_store,
)

__all__ = [
    "BlobStore",
    "IpfsBlobStore",
    "close_blob_store",
    "get_blob_store",
    "reset_blob_store",
]
