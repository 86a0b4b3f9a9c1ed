from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from api import api as people_api

TABLE_URL = "/rest/v1/people_counter"


@pytest.fixture
def client() -> TestClient:
    people_api.READINGS.clear()
    return TestClient(people_api.app)


def _seed(client: TestClient) -> None:
    for second, count in [(0, 3), (10, 7), (5, 12)]:
        resp = client.post(
            TABLE_URL,
            json={"created_at": f"2024-05-01T08:00:{second:02d}+00:00", "people_count": count},
        )
        assert resp.status_code == 201


def test_insert_assigns_id_and_timestamp(client: TestClient) -> None:
    resp = client.post(TABLE_URL, json={"people_count": 4})

    body = resp.json()
    assert resp.status_code == 201
    assert body["id"]
    assert body["created_at"]
    assert body["people_count"] == 4
    assert client.get("/").json()["rows"] == 1


def test_negative_count_is_rejected(client: TestClient) -> None:
    assert client.post(TABLE_URL, json={"people_count": -2}).status_code == 422


def test_select_orders_and_limits(client: TestClient) -> None:
    _seed(client)

    asc = client.get(TABLE_URL, params={"select": "id,created_at,people_count", "order": "created_at.asc"})
    assert [r["people_count"] for r in asc.json()] == [3, 12, 7]

    newest = client.get(TABLE_URL, params={"order": "created_at.desc", "limit": 2})
    assert [r["people_count"] for r in newest.json()] == [7, 12]


def test_equal_timestamps_are_ordered_by_id(client: TestClient) -> None:
    for count in (1, 2, 3):
        client.post(TABLE_URL, json={"created_at": "2024-05-01T08:00:00+00:00", "people_count": count})

    asc = client.get(TABLE_URL, params={"order": "created_at.asc,id.asc"}).json()
    desc = client.get(TABLE_URL, params={"order": "created_at.desc,id.desc", "limit": 2}).json()

    assert [r["people_count"] for r in asc] == [1, 2, 3]
    assert [r["people_count"] for r in desc] == [3, 2]


def test_select_projects_columns(client: TestClient) -> None:
    _seed(client)

    rows = client.get(TABLE_URL, params={"select": "people_count"}).json()
    assert rows[0] == {"people_count": 3}


@pytest.mark.parametrize(
    "params",
    [{"select": "id,secret"}, {"order": "people_count.asc"}, {"order": "created_at.asc,people_count.desc"}, {"limit": 0}],
)
def test_bad_query_is_rejected(client: TestClient, params) -> None:
    assert client.get(TABLE_URL, params=params).status_code == 400
