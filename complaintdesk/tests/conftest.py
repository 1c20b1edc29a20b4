from __future__ import annotations

import os
import tempfile

# Point settings at a throwaway SQLite file before any complaintdesk module reads them.
_DB_DIR = tempfile.mkdtemp(prefix="complaintdesk-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_DB_DIR}/complaintdesk.db"

import pytest  # noqa: E402

from complaintdesk.persistence.db import engine, reset_schema  # noqa: E402


@pytest.fixture(autouse=True)
async def reset_schema_between_tests() -> None:
    # Every test starts from empty tables.
    await reset_schema()
    yield
    # Dispose the async engine to prevent cross-loop connection reuse between tests.
    await engine.dispose()
