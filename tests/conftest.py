"""Root conftest — shared test configuration."""

import os

# Tests never reach a real database or mail server
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///test.db")
os.environ.setdefault("REMINDER_SWEEP_ENABLED", "false")
