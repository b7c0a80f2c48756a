"""Test session setup.

Importing app.main builds a module-level app from the environment, so DB_URL
points at SQLite before any app import. Tests build their own apps through
support.make_client().
"""

import os

os.environ.setdefault("DB_URL", "sqlite://")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
