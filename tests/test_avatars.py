"""
Tests for profile photos managed from the back-office.
Run from the project root: python -m pytest tests/test_avatars.py -v
"""
import unittest

from models import Role
from services import avatars as avatar_service
from services.errors import NotFoundError, StorageError, ValidationError
from services.storage import FallbackObjectStore, MemoryObjectStore
from services.users import get_user
from tests.helpers import ApiTestCase, DatabaseTestCase, FailingObjectStore


class TestAvatarKeys(unittest.TestCase):
    def test_key_layout(self):
        key = avatar_service.build_avatar_key("usr-1", "Me At The Beach.JPG", timestamp=1700000000000)
        self.assertEqual(key, "avatars/usr-1/1700000000000.jpg")

    def test_only_own_prefix_counts_as_avatar(self):
        self.assertTrue(avatar_service.is_avatar_key("usr-1", "avatars/usr-1/1.png"))
        self.assertFalse(avatar_service.is_avatar_key("usr-1", "avatars/usr-2/1.png"))
        self.assertFalse(avatar_service.is_avatar_key("usr-1", "documents/loan-1/photo_id-1-id.png"))
        self.assertFalse(avatar_service.is_avatar_key("usr-1", None))


class TestAvatarService(DatabaseTestCase):
    async def asyncSetUp(self):
        await super().asyncSetUp()
        self.primary = MemoryObjectStore("primary")
        self.store = FallbackObjectStore(self.primary, MemoryObjectStore("secondary"))
        self.user_id = await self.create_user("client@example.com")

    async def set_avatar(self, filename="me.png", data=b"\x89PNG", content_type="image/png", store=None):
        async with self.Session() as session:
            profile = await avatar_service.set_avatar(
                session,
                store or self.store,
                self.user_id,
                filename=filename,
                data=data,
                content_type=content_type,
            )
            await session.commit()
            return profile

    async def test_upload_sets_avatar_url(self):
        profile = await self.set_avatar()
        self.assertTrue(profile.avatar_url.startswith(f"avatars/{self.user_id}/"))
        self.assertTrue(profile.avatar_url.endswith(".png"))
        self.assertEqual(self.primary.objects[profile.avatar_url].data, b"\x89PNG")

    async def test_replacing_deletes_previous_object(self):
        first = (await self.set_avatar(filename="one.png")).avatar_url
        second = (await self.set_avatar(filename="two.jpg", content_type="image/jpeg")).avatar_url
        self.assertNotEqual(first, second)
        self.assertNotIn(first, self.primary.objects)
        self.assertIn(second, self.primary.objects)

    async def test_remove_deletes_object_and_clears_url(self):
        key = (await self.set_avatar()).avatar_url
        async with self.Session() as session:
            profile = await avatar_service.remove_avatar(session, self.store, self.user_id)
            await session.commit()
        self.assertIsNone(profile.avatar_url)
        self.assertNotIn(key, self.primary.objects)
        async with self.Session() as session:
            with self.assertRaises(NotFoundError):
                await avatar_service.get_avatar(session, self.store, self.user_id)

    async def test_rejects_non_images_and_large_files(self):
        with self.assertRaises(ValidationError):
            await self.set_avatar(content_type="application/pdf")
        with self.assertRaises(ValidationError):
            await self.set_avatar(data=b"x" * (avatar_service.AVATAR_MAX_BYTES + 1))
        self.assertEqual(self.primary.objects, {})

    async def test_storage_outage_keeps_previous_photo(self):
        key = (await self.set_avatar()).avatar_url
        broken = FallbackObjectStore(FailingObjectStore("a"), FailingObjectStore("b"))
        with self.assertRaises(StorageError):
            await self.set_avatar(filename="new.png", store=broken)
        async with self.Session() as session:
            user = await get_user(session, self.user_id)
        self.assertEqual(user.profile.avatar_url, key)
        self.assertIn(key, self.primary.objects)

    async def test_unknown_user(self):
        async with self.Session() as session:
            with self.assertRaises(NotFoundError):
                await avatar_service.remove_avatar(session, self.store, "usr-missing")


class TestAvatarApi(ApiTestCase):
    async def asyncSetUp(self):
        await super().asyncSetUp()
        self.user_id = await self.create_user("client@example.com")
        self.client_headers = await self.login("client@example.com")
        await self.create_user("admin@example.com", role=Role.ADMIN)
        self.admin = await self.login("admin@example.com")

    async def put_avatar(self, headers, content=b"\x89PNG", content_type="image/png"):
        return await self.client.put(
            f"/api/admin/users/{self.user_id}/avatar",
            files={"file": ("me.png", content, content_type)},
            headers=headers,
        )

    async def test_admin_manages_photo(self):
        resp = await self.put_avatar(self.admin)
        self.assertEqual(resp.status_code, 200, resp.text)
        key = resp.json()["profile"]["avatarUrl"]
        self.assertTrue(key.startswith(f"avatars/{self.user_id}/"))

        own = await self.client.get("/api/profile/avatar", headers=self.client_headers)
        self.assertEqual(own.status_code, 200)
        self.assertEqual(own.content, b"\x89PNG")
        self.assertEqual(own.headers["content-type"], "image/png")

        viewed = await self.client.get(f"/api/admin/users/{self.user_id}/avatar", headers=self.admin)
        self.assertEqual(viewed.content, b"\x89PNG")

        resp = await self.client.delete(f"/api/admin/users/{self.user_id}/avatar", headers=self.admin)
        self.assertEqual(resp.status_code, 200)
        self.assertIsNone(resp.json()["profile"]["avatarUrl"])
        self.assertNotIn(key, self.primary.objects)
        missing = await self.client.get("/api/profile/avatar", headers=self.client_headers)
        self.assertEqual(missing.status_code, 404)

    async def test_clients_cannot_manage_photos(self):
        resp = await self.put_avatar(self.client_headers)
        self.assertEqual(resp.status_code, 403)

    async def test_non_image_rejected(self):
        resp = await self.put_avatar(self.admin, content=b"%PDF", content_type="application/pdf")
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(self.primary.objects, {})

    async def test_profile_update_cannot_point_avatar_at_other_objects(self):
        resp = await self.client.put(
            "/api/profile",
            json={"firstName": "Changed", "avatarUrl": "documents/loan-1/photo_id-1-id.png"},
            headers=self.client_headers,
        )
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["firstName"], "Changed")
        self.assertIsNone(resp.json()["avatarUrl"])
