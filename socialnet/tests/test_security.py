import time
import unittest

import jwt

from socialnet.config import Settings
from socialnet.security import (
    create_access_token,
    get_password_hash,
    verify_password,
    verify_token,
)


class TokenTests(unittest.TestCase):
    def setUp(self):
        self.settings = Settings(jwt_secret="test-secret", bcrypt_rounds=4)

    def test_user_id_round_trips(self):
        token = create_access_token("abc123", self.settings)
        check = verify_token(token, self.settings)
        self.assertTrue(check.ok)
        self.assertEqual(check.user_id, "abc123")

    def test_wrong_secret_is_an_error_value(self):
        token = create_access_token("abc123", self.settings)
        other = Settings(jwt_secret="another-secret")
        check = verify_token(token, other)
        self.assertFalse(check.ok)
        self.assertEqual(check.error, "Invalid token")

    def test_expired_token(self):
        token = jwt.encode(
            {"user": {"id": "abc123"}, "exp": int(time.time()) - 5},
            "test-secret",
            algorithm="HS256",
        )
        check = verify_token(token, self.settings)
        self.assertFalse(check.ok)
        self.assertEqual(check.error, "Token expired")

    def test_payload_without_user_id(self):
        token = jwt.encode({"sub": "abc123"}, "test-secret", algorithm="HS256")
        self.assertFalse(verify_token(token, self.settings).ok)

    def test_garbage_token(self):
        self.assertFalse(verify_token("garbage", self.settings).ok)


class PasswordTests(unittest.TestCase):
    def test_hash_is_salted_and_verifies(self):
        settings = Settings(bcrypt_rounds=4)
        first = get_password_hash("secret123", settings)
        second = get_password_hash("secret123", settings)
        self.assertNotEqual(first, second)
        self.assertTrue(verify_password("secret123", first, settings))
        self.assertFalse(verify_password("wrong", first, settings))


if __name__ == "__main__":
    unittest.main()
