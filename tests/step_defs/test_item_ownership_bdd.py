"""
BDD step definitions for the item ownership feature (pytest-bdd).
Steps drive the real app through TestClient; every request gets its own
committed session, as in production.
"""

import pytest
from fastapi.testclient import TestClient
from pytest_bdd import given, parsers, scenarios, then, when
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from marketbook.db.base import Base
from marketbook.db.session import get_db
from marketbook.main import app

scenarios("../features/item_ownership.feature")

PASSWORD = "secret1"


@pytest.fixture
def api():
    engine = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool)
    maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    state = {"ready": False}

    async def override_get_db():
        # Tables are created inside the client's event loop on first use
        if not state["ready"]:
            async with engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
            state["ready"] = True
        async with maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as client:
        yield client
        client.portal.call(engine.dispose)
    app.dependency_overrides.clear()


@pytest.fixture
def world():
    """Accounts by email, the item under test and the last response."""
    return {"accounts": {}}


def _headers(world, email):
    return {"Authorization": f"Bearer {world['accounts'][email]['accessToken']}"}


@given(parsers.parse('a registered user "{email}"'))
def registered_user(api, world, email):
    r = api.post("/api/v1/users/register", json={"name": email.split("@")[0], "email": email, "password": PASSWORD})
    assert r.status_code == 201, r.text
    world["accounts"][email] = r.json()


@given(parsers.parse('a registered admin "{email}"'))
def registered_admin(api, world, email):
    r = api.post(
        "/api/v1/users/register-admin",
        json={"name": "Root", "email": email, "password": PASSWORD, "adminCode": "ADMIN2024"},
    )
    assert r.status_code == 201, r.text
    world["accounts"][email] = r.json()


@given(parsers.parse('"{email}" owns an item named "{name}"'))
def owned_item(api, world, email, name):
    r = api.post(
        "/api/v1/items",
        headers=_headers(world, email),
        json={"name": name, "description": "Wood chair", "category": "Furniture", "price": 5000},
    )
    assert r.status_code == 201, r.text
    world["item"] = r.json()


@when(parsers.parse('"{email}" deletes the item'))
def delete_item(api, world, email):
    world["response"] = api.delete(f"/api/v1/items/{world['item']['id']}", headers=_headers(world, email))


@then(parsers.parse("the response status should be {code:d}"))
def response_status(world, code):
    assert world["response"].status_code == code


@then(parsers.parse('"{email}" can still fetch the item'))
def item_still_there(api, world, email):
    r = api.get(f"/api/v1/items/{world['item']['id']}", headers=_headers(world, email))
    assert r.status_code == 200
    assert r.json()["invoiceNumber"] == world["item"]["invoiceNumber"]


@then(parsers.parse('the audit trail holds one DELETE entry by "{email}"'))
def one_delete_entry(api, world, email):
    r = api.get("/api/v1/users/audit-logs", headers=_headers(world, email))
    deletes = [log for log in r.json()["logs"] if log["action"] == "DELETE"]
    assert len(deletes) == 1
    assert deletes[0]["userId"] == world["accounts"][email]["id"]
    assert deletes[0]["resourceId"] == world["item"]["id"]


@then(parsers.parse('"{email}" has a "{severity}" notification titled "{title}"'))
def has_notification(api, world, email, severity, title):
    inbox = api.get("/api/v1/users/notifications", headers=_headers(world, email)).json()
    assert [n["type"] for n in inbox if n["title"] == title] == [severity]


@then(parsers.parse('"{email}" has no notification titled "{title}"'))
def no_notification(api, world, email, title):
    inbox = api.get("/api/v1/users/notifications", headers=_headers(world, email)).json()
    assert all(n["title"] != title for n in inbox)
