"""Unit tests for app.services.validation."""

import unittest

from app.services.validation import (
    FieldError,
    format_field_errors,
    validate_login,
    validate_signup,
)


def _fields(errors: list[FieldError]) -> set[str]:
    return {e.field for e in errors}


class TestValidateSignup(unittest.TestCase):
    def test_valid_body_normalizes_email_and_defaults_role(self) -> None:
        signup, errors = validate_signup(
            {"name": " Ann ", "email": " Ann@X.com ", "password": "secret123"}
        )
        self.assertEqual(errors, [])
        self.assertEqual(signup.name, "Ann")
        self.assertEqual(signup.email, "ann@x.com")
        self.assertEqual(signup.role, "user")

    def test_admin_role_accepted(self) -> None:
        signup, errors = validate_signup(
            {"name": "Ann", "email": "ann@x.com", "password": "secret123", "role": "admin"}
        )
        self.assertEqual(errors, [])
        self.assertEqual(signup.role, "admin")

    def test_all_bad_fields_reported_together(self) -> None:
        signup, errors = validate_signup(
            {"name": "A", "email": "not-an-email", "password": "123", "role": "root"}
        )
        self.assertIsNone(signup)
        self.assertEqual(_fields(errors), {"name", "email", "password", "role"})

    def test_missing_fields(self) -> None:
        signup, errors = validate_signup({})
        self.assertIsNone(signup)
        self.assertEqual(_fields(errors), {"name", "email", "password"})

    def test_wrong_types(self) -> None:
        _, errors = validate_signup({"name": 12, "email": ["a@b.io"], "password": None})
        self.assertEqual(_fields(errors), {"name", "email", "password"})

    def test_length_bounds(self) -> None:
        _, errors = validate_signup(
            {"name": "N" * 256, "email": "ann@x.com", "password": "p" * 129}
        )
        self.assertEqual(_fields(errors), {"name", "password"})
        _, errors = validate_signup(
            {"name": "Al", "email": "ann@x.com", "password": "p" * 6}
        )
        self.assertEqual(errors, [])

    def test_non_object_body(self) -> None:
        for body in (None, [], "text", 3):
            with self.subTest(body=body):
                signup, errors = validate_signup(body)
                self.assertIsNone(signup)
                self.assertEqual(_fields(errors), {"body"})


class TestValidateLogin(unittest.TestCase):
    def test_valid(self) -> None:
        credentials, errors = validate_login({"email": "ANN@x.com", "password": "x"})
        self.assertEqual(errors, [])
        self.assertEqual(credentials.email, "ann@x.com")

    def test_empty_password(self) -> None:
        credentials, errors = validate_login({"email": "ann@x.com", "password": ""})
        self.assertIsNone(credentials)
        self.assertEqual(_fields(errors), {"password"})

    def test_bad_email(self) -> None:
        _, errors = validate_login({"email": "ann", "password": "secret123"})
        self.assertEqual(_fields(errors), {"email"})


class TestFormatFieldErrors(unittest.TestCase):
    def test_joins_messages(self) -> None:
        out = format_field_errors(
            [FieldError("name", "Name is required"), FieldError("email", "Invalid email address")]
        )
        self.assertEqual(out, "name: Name is required, email: Invalid email address")
