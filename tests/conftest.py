"""Shared fixtures for the ledger tests.

- Every test gets its own in-memory database with the ledger indexes in place.
- HTTP tests go through the local ASGI app with get_db overridden.
- AnyIO runs the async tests (@pytest.mark.anyio) on asyncio.
"""

import uuid
from datetime import timedelta
from typing import Any, AsyncGenerator, Dict

import httpx
import pytest
from httpx import ASGITransport
from mongomock_motor import AsyncMongoMockClient

from hr_ledger.db import ensure_indexes, get_db
from hr_ledger.main import app
from hr_ledger.models.employees import Employee, Role
from hr_ledger.utils.app_utils import create_access_token, hash_password


@pytest.fixture(scope="session")
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture(scope="function")
async def test_db() -> AsyncGenerator[Any, None]:
    """Function-scoped isolated in-memory database with the ledger indexes."""

    client = AsyncMongoMockClient()
    db = client[f"hr_ledger_test_{uuid.uuid4().hex}"]
    await ensure_indexes(db)
    yield db


@pytest.fixture
def make_employee(test_db):
    """Insert an account directly and return its document (with `_id`)."""

    async def _make(name: str = "John Doe", email: str = None, role: Role = Role.EMPLOYEE,
                    leave_balance: int = 20, password: str = "employee123") -> Dict[str, Any]:
        email = email or f"{uuid.uuid4().hex[:8]}@company.com"
        employee = Employee(
            name=name,
            email=email,
            password=hash_password(password),
            role=role,
            leave_balance=leave_balance
        )
        document = employee.model_dump()
        result = await test_db.employees.insert_one(document)
        document["_id"] = result.inserted_id
        return document

    return _make


@pytest.fixture(scope="function")
async def app_with_overrides(test_db) -> AsyncGenerator[Any, None]:
    """FastAPI app instance whose get_db dependency points to test_db."""

    async def override_get_db():
        return test_db

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield app
    finally:
        app.dependency_overrides.clear()


@pytest.fixture(scope="function")
async def async_client(app_with_overrides) -> AsyncGenerator[httpx.AsyncClient, None]:
    transport = ASGITransport(app=app_with_overrides)
    async with httpx.AsyncClient(transport=transport, base_url="http://test", timeout=30.0) as client:
        yield client


@pytest.fixture
def auth_headers():
    """Bearer headers for an account document, as issued by /auth/login."""

    def _headers(employee: Dict[str, Any]) -> Dict[str, str]:
        token = create_access_token(
            payload={"sub": employee["email"], "role": employee["role"]},
            expiry=timedelta(hours=1)
        )
        return {"Authorization": f"Bearer {token}"}

    return _headers
