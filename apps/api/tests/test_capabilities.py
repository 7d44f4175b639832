from __future__ import annotations

import logging
from typing import Callable

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.engine import Engine

from homelink_api.db.capabilities import (
    ACCESS_PERMISSIONS,
    HOME_INVITES,
    HOME_MEMBERS,
    SchemaCapabilities,
    suggested_create_statement,
)
from homelink_api.models.home_models import AccessPermission
from homelink_api.models.identity_models import HomeInvite, HomeMembership


def test_probe_reports_missing_optional_relations(engine: Engine) -> None:
    assert SchemaCapabilities.probe(engine).missing == []

    HomeInvite.__table__.drop(engine)
    capabilities = SchemaCapabilities.probe(engine)
    assert capabilities.missing == [HOME_INVITES]
    assert capabilities.has_home_members
    assert not capabilities.has_home_invites


def test_suggested_statement_targets_dialect(engine: Engine) -> None:
    statement = suggested_create_statement(ACCESS_PERMISSIONS, engine)
    assert statement.startswith("CREATE TABLE access_permissions")
    assert "day_of_week" in statement
    assert suggested_create_statement("not_a_table", engine) is None


@pytest.mark.parametrize(
    ("model", "path", "by_home"),
    [
        (AccessPermission, "/api/v1/access-permissions", True),
        (HomeMembership, "/api/v1/home-members", True),
        (HomeInvite, "/api/v1/home-invites", True),
        (HomeInvite, "/api/v1/home-invites", False),
    ],
)
def test_listing_missing_relation_returns_empty_and_warns(
    client: TestClient,
    engine: Engine,
    seeded: dict[str, str],
    headers_for: Callable[[str], dict[str, str]],
    caplog,
    model,
    path: str,
    by_home: bool,
) -> None:
    headers = headers_for(seeded["owner_id"])
    model.__table__.drop(engine)
    params = {"home_id": seeded["home_id"]} if by_home else {}

    with caplog.at_level(logging.WARNING, logger="homelink_api.db.capabilities"):
        response = client.get(path, params=params, headers=headers)

    assert response.status_code == 200
    assert response.json() == []
    assert any(
        getattr(record, "relation", None) == model.__tablename__
        and "empty listing" in record.getMessage()
        for record in caplog.records
    )


def test_write_into_missing_invites_returns_remediation_payload(
    client: TestClient,
    engine: Engine,
    seeded: dict[str, str],
    headers_for: Callable[[str], dict[str, str]],
) -> None:
    headers = headers_for(seeded["owner_id"])
    HomeInvite.__table__.drop(engine)

    response = client.post(
        "/api/v1/home-invites",
        json={"home_id": seeded["home_id"], "email": "stranger@example.com"},
        headers=headers,
    )
    assert response.status_code == 500
    payload = response.json()
    assert payload["error"] == "relation_missing"
    assert payload["relation"] == HOME_INVITES
    assert "CREATE TABLE home_invites" in payload["suggested_sql"]


def test_write_into_missing_relation_is_refused_up_front(
    client: TestClient,
    engine: Engine,
    seeded: dict[str, str],
    headers_for: Callable[[str], dict[str, str]],
) -> None:
    AccessPermission.__table__.drop(engine)

    response = client.post(
        "/api/v1/access-permissions",
        json={
            "home_id": seeded["home_id"],
            "user_id": seeded["member_id"],
            "room_name": "Garage",
            "day_of_week": 1,
            "start_time": "09:00",
            "end_time": "17:00",
        },
        headers=headers_for(seeded["owner_id"]),
    )
    assert response.status_code == 500
    payload = response.json()
    assert payload["error"] == "relation_missing"
    assert payload["relation"] == ACCESS_PERMISSIONS
    assert payload["suggested_sql"].startswith("CREATE TABLE access_permissions")


def test_missing_permissions_table_degrades_member_visibility(
    client: TestClient,
    engine: Engine,
    seeded: dict[str, str],
    headers_for: Callable[[str], dict[str, str]],
) -> None:
    AccessPermission.__table__.drop(engine)

    member = client.get(
        "/api/v1/access-permissions/filter",
        params={"home_id": seeded["home_id"]},
        headers=headers_for(seeded["member_id"]),
    )
    assert member.status_code == 200
    assert member.json() == []

    owner = client.get(
        "/api/v1/rooms",
        params={"home_id": seeded["home_id"]},
        headers=headers_for(seeded["owner_id"]),
    )
    assert [room["name"] for room in owner.json()] == ["Garage", "Kitchen"]


def test_missing_members_table_refuses_member_writes(
    client: TestClient,
    engine: Engine,
    seeded: dict[str, str],
    headers_for: Callable[[str], dict[str, str]],
) -> None:
    headers = headers_for(seeded["owner_id"])
    HomeMembership.__table__.drop(engine)

    response = client.post(
        "/api/v1/home-members",
        json={"home_id": seeded["home_id"], "user_id": seeded["stranger_id"]},
        headers=headers,
    )
    assert response.status_code == 500
    assert response.json()["relation"] == HOME_MEMBERS
