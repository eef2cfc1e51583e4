from datetime import timedelta
from unittest.mock import patch

import auth
from errors import AuthFailure, ConflictError, NotFoundError, ValidationError
from security import create_access_token
from tests.base import StoreTestCase, UPLOADED_URL


class TestRegister(StoreTestCase):

    def test_register_returns_sanitized_user(self):
        user = auth.register("Ann", "a@x.com", "secret1")
        self.assertEqual(user["fullName"], "Ann")
        self.assertEqual(user["email"], "a@x.com")
        self.assertEqual(user["profilePic"], "")
        self.assertTrue(user["id"])
        self.assertNotIn("password", user)

    def test_stored_password_is_hashed(self):
        auth.register("Ann", "a@x.com", "secret1")
        stored = self.db["user"].find_one({"email": "a@x.com"})
        self.assertNotEqual(stored["password"], "secret1")
        self.assertTrue(stored["password"].startswith("$2"))

    def test_duplicate_email_conflicts(self):
        auth.register("Ann", "a@x.com", "secret1")
        with self.assertRaises(ConflictError) as ctx:
            auth.register("Another Ann", "a@x.com", "secret2")
        self.assertEqual(ctx.exception.message, "Email already exists")
        self.assertEqual(self.db["user"].count_documents({}), 1)

    def test_email_is_stored_lowercased(self):
        user = auth.register("Ann", "  Ann@Example.COM ", "secret1")
        self.assertEqual(user["email"], "ann@example.com")
        with self.assertRaises(ConflictError):
            auth.register("Ann", "ANN@example.com", "secret1")

    def test_duplicate_email_rejected_by_unique_index(self):
        auth.register("Ann", "a@x.com", "secret1")
        # Simulate a concurrent signup that passed the existence check.
        with patch("auth.collection") as users:
            users.return_value.find_one.return_value = None
            with self.assertRaises(ConflictError) as ctx:
                auth.register("Ann", "a@x.com", "secret1")
        self.assertEqual(ctx.exception.message, "Email already exists")
        self.assertEqual(self.db["user"].count_documents({}), 1)

    def test_missing_fields_rejected(self):
        for args in [(None, "a@x.com", "secret1"), ("Ann", "", "secret1"), ("Ann", "a@x.com", None)]:
            with self.assertRaises(ValidationError) as ctx:
                auth.register(*args)
            self.assertEqual(ctx.exception.message, "All fields are required")

    def test_short_password_rejected(self):
        with self.assertRaises(ValidationError) as ctx:
            auth.register("Ann", "a@x.com", "12345")
        self.assertEqual(ctx.exception.message, "Password must be at least 6 characters")
        self.assertEqual(self.db["user"].count_documents({}), 0)


class TestAuthenticate(StoreTestCase):

    def setUp(self):
        super().setUp()
        self.user = auth.register("Ann", "a@x.com", "secret1")

    def test_correct_password(self):
        user = auth.authenticate("a@x.com", "secret1")
        self.assertEqual(user["id"], self.user["id"])
        self.assertNotIn("password", user)

    def test_email_lookup_ignores_case(self):
        self.assertEqual(auth.authenticate("A@X.COM", "secret1")["id"], self.user["id"])

    def test_wrong_password_and_unknown_email_look_the_same(self):
        with self.assertRaises(AuthFailure) as wrong_password:
            auth.authenticate("a@x.com", "secret2")
        with self.assertRaises(AuthFailure) as unknown_email:
            auth.authenticate("b@x.com", "secret1")
        self.assertEqual(wrong_password.exception.message, unknown_email.exception.message)
        self.assertEqual(wrong_password.exception.message, "Invalid credentials")


class TestVerify(StoreTestCase):

    def setUp(self):
        super().setUp()
        self.user = auth.register("Ann", "a@x.com", "secret1")

    def test_valid_token_resolves_user(self):
        token = create_access_token({"sub": self.user["id"]})
        self.assertEqual(auth.verify(token)["email"], "a@x.com")

    def test_missing_token(self):
        with self.assertRaises(AuthFailure) as ctx:
            auth.verify(None)
        self.assertEqual(ctx.exception.message, "Unauthorized - No Token Provided")

    def test_tampered_token(self):
        token = create_access_token({"sub": self.user["id"]})
        with self.assertRaises(AuthFailure):
            auth.verify(token[:-2] + ("aa" if not token.endswith("aa") else "bb"))

    def test_expired_token(self):
        token = create_access_token({"sub": self.user["id"]}, expires_delta=timedelta(seconds=-1))
        with self.assertRaises(AuthFailure) as ctx:
            auth.verify(token)
        self.assertEqual(ctx.exception.message, "Unauthorized - Invalid Token")

    def test_token_for_deleted_user(self):
        token = create_access_token({"sub": self.user["id"]})
        self.db["user"].delete_many({})
        with self.assertRaises(NotFoundError):
            auth.verify(token)

    def test_token_with_malformed_id(self):
        token = create_access_token({"sub": "not-an-object-id"})
        with self.assertRaises(NotFoundError):
            auth.verify(token)


class TestUpdateProfile(StoreTestCase):

    def setUp(self):
        super().setUp()
        self.user = auth.register("Ann", "a@x.com", "secret1")

    def test_stores_uploaded_url(self):
        updated = auth.update_profile(self.user["id"], "data:image/png;base64,AAAA")
        self.upload.assert_called_once_with("data:image/png;base64,AAAA")
        self.assertEqual(updated["profilePic"], UPLOADED_URL)
        stored = self.db["user"].find_one({"email": "a@x.com"})
        self.assertEqual(stored["profilePic"], UPLOADED_URL)

    def test_requires_picture(self):
        with self.assertRaises(ValidationError):
            auth.update_profile(self.user["id"], "")
        self.upload.assert_not_called()

    def test_unknown_user(self):
        with self.assertRaises(NotFoundError):
            auth.update_profile("0" * 24, "data:image/png;base64,AAAA")
        self.upload.assert_not_called()
