"""
Object storage for uploaded documents.

Every backend implements the same ``ObjectStore`` interface. The relay is
built from configuration as a ``FallbackObjectStore`` wrapping a primary and
an optional secondary backend; a fallback is logged, never silent.
"""
from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

import boto3
from botocore.client import Config
from botocore.exceptions import BotoCoreError, ClientError
from fastapi.concurrency import run_in_threadpool

from config import Settings, settings
from services.errors import StorageError

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


@dataclass
class StoredObject:
    data: bytes
    content_type: str


class ObjectNotFound(Exception):
    pass


class ObjectStore(Protocol):
    name: str

    async def put(self, key: str, data: bytes, content_type: str) -> str:
        """Store the object and return the name of the backend that holds it."""
        ...

    async def get(self, key: str) -> StoredObject: ...

    async def delete(self, key: str) -> None: ...


def safe_filename(filename: str) -> str:
    """Reduce a client-supplied filename to a safe base name."""
    base = filename.replace("\\", "/").rsplit("/", 1)[-1].strip()
    base = _UNSAFE_CHARS.sub("_", base).strip("._")
    return base or "file"


def build_storage_key(loan_id: str, document_type: str, filename: str, timestamp: int | None = None) -> str:
    """documents/{loanId}/{documentType}-{timestamp}-{filename}, timestamp in microseconds."""
    ts = timestamp if timestamp is not None else time.time_ns() // 1_000
    return f"documents/{loan_id}/{safe_filename(document_type)}-{ts}-{safe_filename(filename)}"


class S3ObjectStore:
    """Any S3-compatible bucket (AWS S3, Cloudflare R2, MinIO)."""

    def __init__(
        self,
        bucket: str,
        *,
        endpoint_url: str | None = None,
        access_key_id: str | None = None,
        secret_access_key: str | None = None,
        region: str = "auto",
        name: str = "s3",
        client=None,
    ):
        self.name = name
        self.bucket = bucket
        self._client = client or boto3.client(
            "s3",
            endpoint_url=endpoint_url,
            aws_access_key_id=access_key_id,
            aws_secret_access_key=secret_access_key,
            region_name=region,
            config=Config(signature_version="s3v4"),
        )

    async def put(self, key: str, data: bytes, content_type: str) -> str:
        await run_in_threadpool(
            self._client.put_object,
            Bucket=self.bucket,
            Key=key,
            Body=data,
            ContentType=content_type,
        )
        return self.name

    async def get(self, key: str) -> StoredObject:
        try:
            resp = await run_in_threadpool(self._client.get_object, Bucket=self.bucket, Key=key)
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") in ("NoSuchKey", "404"):
                raise ObjectNotFound(key) from e
            raise
        body = resp["Body"]
        try:
            data = await run_in_threadpool(body.read)
        finally:
            body.close()
        return StoredObject(data=data, content_type=resp.get("ContentType") or "application/octet-stream")

    async def delete(self, key: str) -> None:
        await run_in_threadpool(self._client.delete_object, Bucket=self.bucket, Key=key)


class LocalObjectStore:
    """Files under a root directory, keyed by the storage key as a relative path."""

    def __init__(self, root: str | Path, name: str = "local"):
        self.name = name
        self.root = Path(root).resolve()

    def _path(self, key: str) -> Path:
        path = (self.root / key).resolve()
        if self.root not in path.parents:
            raise ValueError(f"Storage key escapes the storage root: {key}")
        return path

    def _write(self, key: str, data: bytes, content_type: str) -> None:
        path = self._path(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        path.with_name(path.name + ".content-type").write_text(content_type)

    def _read(self, key: str) -> StoredObject:
        path = self._path(key)
        if not path.is_file():
            raise ObjectNotFound(key)
        meta = path.with_name(path.name + ".content-type")
        content_type = meta.read_text() if meta.is_file() else "application/octet-stream"
        return StoredObject(data=path.read_bytes(), content_type=content_type)

    def _remove(self, key: str) -> None:
        path = self._path(key)
        path.unlink(missing_ok=True)
        path.with_name(path.name + ".content-type").unlink(missing_ok=True)

    async def put(self, key: str, data: bytes, content_type: str) -> str:
        await run_in_threadpool(self._write, key, data, content_type)
        return self.name

    async def get(self, key: str) -> StoredObject:
        return await run_in_threadpool(self._read, key)

    async def delete(self, key: str) -> None:
        await run_in_threadpool(self._remove, key)


class MemoryObjectStore:
    """In-process store for local development and tests."""

    def __init__(self, name: str = "memory"):
        self.name = name
        self.objects: dict[str, StoredObject] = {}

    async def put(self, key: str, data: bytes, content_type: str) -> str:
        self.objects[key] = StoredObject(data=bytes(data), content_type=content_type)
        return self.name

    async def get(self, key: str) -> StoredObject:
        try:
            return self.objects[key]
        except KeyError:
            raise ObjectNotFound(key) from None

    async def delete(self, key: str) -> None:
        self.objects.pop(key, None)


# Errors a backend may raise that should trigger the fallback path
_BACKEND_ERRORS = (BotoCoreError, ClientError, OSError, ValueError, ObjectNotFound, StorageError)


class FallbackObjectStore:
    """
    Try the primary backend first and the secondary once on failure.
    Satisfies ObjectStore itself, so a fallback pair can serve as a backend.
    """

    def __init__(self, primary: ObjectStore, secondary: ObjectStore | None = None):
        self.primary = primary
        self.secondary = secondary
        self.name = primary.name if secondary is None else f"{primary.name}+{secondary.name}"

    def _backends(self) -> list[ObjectStore]:
        return [self.primary] if self.secondary is None else [self.primary, self.secondary]

    async def put(self, key: str, data: bytes, content_type: str) -> str:
        """Write the object and return the name of the backend that accepted it."""
        errors = []
        for backend in self._backends():
            try:
                stored_on = await backend.put(key, data, content_type)
            except _BACKEND_ERRORS as e:
                errors.append(f"{backend.name}: {e}")
                logger.warning("Storage write to %s failed for %s: %s", backend.name, key, e)
                continue
            if backend is not self.primary:
                logger.warning("Stored %s on fallback backend %s", key, backend.name)
            return stored_on
        raise StorageError("File upload failed on all storage backends (" + "; ".join(errors) + ")")

    async def get(self, key: str) -> StoredObject:
        errors = []
        for backend in self._backends():
            try:
                obj = await backend.get(key)
            except _BACKEND_ERRORS as e:
                errors.append(f"{backend.name}: {e}")
                logger.warning("Storage read from %s failed for %s: %s", backend.name, key, e)
                continue
            if backend is not self.primary:
                logger.info("Read %s from fallback backend %s", key, backend.name)
            return obj
        raise StorageError("Download failed on all storage backends (" + "; ".join(errors) + ")")

    async def delete(self, key: str) -> None:
        for backend in self._backends():
            try:
                await backend.delete(key)
            except _BACKEND_ERRORS as e:
                logger.warning("Storage delete on %s failed for %s: %s", backend.name, key, e)


def _build_backend(kind: str, cfg: Settings, secondary: bool) -> ObjectStore | None:
    kind = (kind or "none").lower()
    if kind == "none":
        return None
    if kind == "memory":
        return MemoryObjectStore()
    if kind == "local":
        return LocalObjectStore(cfg.local_storage_dir)
    if kind == "s3":
        if secondary:
            return S3ObjectStore(
                cfg.s3_secondary_bucket,
                endpoint_url=cfg.s3_secondary_endpoint_url,
                access_key_id=cfg.s3_secondary_access_key_id,
                secret_access_key=cfg.s3_secondary_secret_access_key,
                region=cfg.s3_secondary_region,
                name="s3-secondary",
            )
        return S3ObjectStore(
            cfg.s3_bucket,
            endpoint_url=cfg.s3_endpoint_url,
            access_key_id=cfg.s3_access_key_id,
            secret_access_key=cfg.s3_secret_access_key,
            region=cfg.s3_region,
            name="s3-primary",
        )
    raise ValueError(f"Unknown storage backend: {kind}")


def build_object_store(cfg: Settings = settings) -> FallbackObjectStore:
    primary = _build_backend(cfg.storage_primary, cfg, secondary=False)
    if primary is None:
        raise ValueError("STORAGE_PRIMARY must name a storage backend")
    secondary = _build_backend(cfg.storage_secondary, cfg, secondary=True)
    logger.info(
        "Object storage: primary=%s secondary=%s",
        primary.name,
        secondary.name if secondary else "none",
    )
    return FallbackObjectStore(primary, secondary)
