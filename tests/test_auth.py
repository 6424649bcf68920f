"""
Tests for password hashing and bearer tokens.
Run from the project root: python -m pytest tests/test_auth.py -v
"""
import unittest
from unittest import mock

from config import settings
from services.auth import create_access_token, decode_access_token, hash_password, verify_password
from services.errors import AuthenticationError


class TestPasswords(unittest.TestCase):
    def test_hash_is_salted_and_verifies(self):
        first = hash_password("correct-horse")
        second = hash_password("correct-horse")
        self.assertNotEqual(first, second)
        self.assertNotIn("correct-horse", first)
        self.assertTrue(verify_password("correct-horse", first))
        self.assertFalse(verify_password("wrong-horse", first))

    def test_malformed_hash_never_verifies(self):
        self.assertFalse(verify_password("anything", ""))
        self.assertFalse(verify_password("anything", "not-a-hash"))


class TestTokens(unittest.TestCase):
    def test_round_trip_carries_user_id(self):
        token, lifetime = create_access_token("usr-1", "a@example.com")
        self.assertEqual(lifetime, settings.access_token_expire_minutes * 60)
        self.assertEqual(decode_access_token(token), "usr-1")

    def test_expired_token(self):
        with mock.patch.object(settings, "access_token_expire_minutes", -1):
            token, _ = create_access_token("usr-1", "a@example.com")
        with self.assertRaises(AuthenticationError) as ctx:
            decode_access_token(token)
        self.assertEqual(ctx.exception.message, "Token expired")

    def test_token_signed_with_other_secret(self):
        with mock.patch.object(settings, "jwt_secret", "another-secret-of-sufficient-length"):
            token, _ = create_access_token("usr-1", "a@example.com")
        with self.assertRaises(AuthenticationError):
            decode_access_token(token)


if __name__ == "__main__":
    unittest.main()
