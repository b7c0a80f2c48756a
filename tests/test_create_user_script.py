"""Tests for the create_user CLI (python -m app.scripts.create_user)."""

import unittest

from app.models import User
from app.scripts import create_user as script
from support import make_session_factory


class TestCreateUserScript(unittest.TestCase):
    def setUp(self) -> None:
        self.session_factory = make_session_factory()

    def run_script(self, *argv: str) -> int:
        return script.main(list(argv), session_factory=self.session_factory)

    def test_creates_admin(self) -> None:
        code = self.run_script("Ann Admin", "Ann@Acme.io", "secret123", "admin")
        self.assertEqual(code, 0)
        with self.session_factory() as db:
            user = db.query(User).one()
        self.assertEqual(user.email, "ann@acme.io")
        self.assertEqual(user.role, "admin")

    def test_duplicate_fails(self) -> None:
        self.assertEqual(self.run_script("Ann", "ann@acme.io", "secret123"), 0)
        self.assertEqual(self.run_script("Ann", "ANN@acme.io", "secret123"), 1)

    def test_invalid_input_fails(self) -> None:
        self.assertEqual(self.run_script("A", "not-an-email", "123"), 1)
        with self.session_factory() as db:
            self.assertEqual(db.query(User).count(), 0)
