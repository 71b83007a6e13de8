# backend/tests/conftest.py
"""
Pytest configuration shared by every test package.

Testing mode is switched on before any drivingschool import so the engine
in drivingschool.database binds to in-memory SQLite instead of the
configured database.
"""

import os

# CRITICAL: Set testing mode BEFORE any drivingschool imports!
os.environ["is_testing"] = "true"

from drivingschool.core.config import settings  # noqa: E402

settings.is_testing = True
