"""
Tests for the object stores and the primary/secondary fallback.
Run from the project root: python -m pytest tests/test_storage.py -v
"""
import io
import tempfile
import unittest

import boto3
from botocore.response import StreamingBody
from botocore.stub import Stubber

from services.errors import StorageError
from services.storage import (
    FallbackObjectStore,
    LocalObjectStore,
    MemoryObjectStore,
    S3ObjectStore,
    build_storage_key,
    safe_filename,
)
from tests.helpers import FailingObjectStore


class TestStorageKeys(unittest.TestCase):
    def test_key_layout(self):
        key = build_storage_key("loan-abc", "photo_id", "passport.pdf", timestamp=1700000000000000)
        self.assertEqual(key, "documents/loan-abc/photo_id-1700000000000000-passport.pdf")

    def test_filename_is_reduced_to_base_name(self):
        self.assertEqual(safe_filename("../../etc/passwd"), "passwd")
        self.assertEqual(safe_filename("C:\\Users\\me\\bank statement.pdf"), "bank_statement.pdf")
        self.assertEqual(safe_filename(""), "file")

    def test_keys_for_same_slot_differ_over_time(self):
        first = build_storage_key("loan-1", "photo_id", "id.png", timestamp=1)
        second = build_storage_key("loan-1", "photo_id", "id.png", timestamp=2)
        self.assertNotEqual(first, second)


class TestFallbackObjectStore(unittest.IsolatedAsyncioTestCase):
    async def test_primary_used_when_healthy(self):
        primary, secondary = MemoryObjectStore("primary"), MemoryObjectStore("secondary")
        store = FallbackObjectStore(primary, secondary)
        backend = await store.put("k", b"data", "text/plain")
        self.assertEqual(backend, "primary")
        self.assertIn("k", primary.objects)
        self.assertNotIn("k", secondary.objects)

    async def test_falls_back_and_logs(self):
        primary, secondary = FailingObjectStore("primary"), MemoryObjectStore("secondary")
        store = FallbackObjectStore(primary, secondary)
        with self.assertLogs("services.storage", level="WARNING") as logs:
            backend = await store.put("k", b"data", "text/plain")
        self.assertEqual(backend, "secondary")
        self.assertEqual(primary.attempts, 1)
        self.assertTrue(any("fallback" in line for line in logs.output))
        obj = await store.get("k")
        self.assertEqual(obj.data, b"data")

    async def test_both_failing_raises(self):
        store = FallbackObjectStore(FailingObjectStore("a"), FailingObjectStore("b"))
        with self.assertRaises(StorageError):
            await store.put("k", b"data", "text/plain")
        with self.assertRaises(StorageError):
            await store.get("k")

    async def test_missing_object_on_primary_is_read_from_secondary(self):
        primary, secondary = MemoryObjectStore("primary"), MemoryObjectStore("secondary")
        await secondary.put("k", b"old", "application/pdf")
        obj = await FallbackObjectStore(primary, secondary).get("k")
        self.assertEqual(obj.data, b"old")
        self.assertEqual(obj.content_type, "application/pdf")

    async def test_backends_report_their_name(self):
        self.assertEqual(await MemoryObjectStore("memory").put("k", b"x", "text/plain"), "memory")

    async def test_fallback_pair_can_be_nested(self):
        inner = FallbackObjectStore(FailingObjectStore("a"), FailingObjectStore("b"))
        last_resort = MemoryObjectStore("last-resort")
        store = FallbackObjectStore(inner, last_resort)
        self.assertEqual(await store.put("k", b"x", "text/plain"), "last-resort")

        healthy_inner = FallbackObjectStore(FailingObjectStore("a"), MemoryObjectStore("b"))
        self.assertEqual(await FallbackObjectStore(healthy_inner).put("k", b"x", "text/plain"), "b")

    async def test_delete_tolerates_failures(self):
        healthy = MemoryObjectStore("healthy")
        await healthy.put("k", b"x", "text/plain")
        store = FallbackObjectStore(FailingObjectStore("broken"), healthy)
        await store.delete("k")
        self.assertNotIn("k", healthy.objects)


class TestLocalObjectStore(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.store = LocalObjectStore(self._tmp.name)

    async def asyncTearDown(self):
        self._tmp.cleanup()

    async def test_put_get_delete(self):
        await self.store.put("documents/loan-1/photo_id-1-id.png", b"\x89PNG", "image/png")
        obj = await self.store.get("documents/loan-1/photo_id-1-id.png")
        self.assertEqual(obj.data, b"\x89PNG")
        self.assertEqual(obj.content_type, "image/png")
        await self.store.delete("documents/loan-1/photo_id-1-id.png")
        with self.assertRaises(Exception):
            await self.store.get("documents/loan-1/photo_id-1-id.png")

    async def test_key_cannot_escape_root(self):
        with self.assertRaises(ValueError):
            await self.store.put("../outside.txt", b"x", "text/plain")


class TestS3ObjectStore(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.client = boto3.client(
            "s3",
            region_name="us-east-1",
            aws_access_key_id="test",
            aws_secret_access_key="test",
        )
        self.stubber = Stubber(self.client)
        self.store = S3ObjectStore("loan-documents", client=self.client, name="s3-primary")

    async def test_put_object(self):
        self.stubber.add_response("put_object", {})
        with self.stubber:
            await self.store.put("documents/loan-1/photo_id-1-id.pdf", b"%PDF", "application/pdf")
        self.stubber.assert_no_pending_responses()

    async def test_get_object(self):
        self.stubber.add_response(
            "get_object",
            {"Body": StreamingBody(io.BytesIO(b"%PDF"), 4), "ContentType": "application/pdf"},
        )
        with self.stubber:
            obj = await self.store.get("documents/loan-1/photo_id-1-id.pdf")
        self.assertEqual(obj.data, b"%PDF")
        self.assertEqual(obj.content_type, "application/pdf")

    async def test_client_error_triggers_fallback(self):
        self.stubber.add_client_error("put_object", service_error_code="InternalError", http_status_code=500)
        secondary = MemoryObjectStore("secondary")
        store = FallbackObjectStore(self.store, secondary)
        with self.stubber:
            backend = await store.put("k", b"data", "text/plain")
        self.assertEqual(backend, "secondary")


if __name__ == "__main__":
    unittest.main()
