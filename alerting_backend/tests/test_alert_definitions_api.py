from __future__ import annotations

import httpx
import pytest


def _scalar(name: str, value, labels: dict) -> dict:
    return {"name": name, "fields": [{"name": "", "type": "nullable_float64", "labels": labels, "values": [value]}]}


@pytest.fixture
def seeded(store, engine):
    store.docs[1] = {
        "id": 1,
        "orgId": 1,
        "data": {
            "panels": [
                {
                    "id": 2,
                    "datasource": "ds-A",
                    "targets": [
                        {"refId": "A", "expr": "up"},
                        {"refId": "B", "datasource": "__expr__", "type": "math", "expression": "$A > 0"},
                    ],
                }
            ]
        },
    }
    engine.response = {
        "B": {"frames": [_scalar("B", 0.0, {"host": "a"}), _scalar("B", 1.0, {"host": "b"}), _scalar("B", None, {"host": "c"})]}
    }
    return store


@pytest.mark.anyio
async def test_eval_dashboard_condition_returns_instances_and_frame(async_client: httpx.AsyncClient, seeded, engine, directory):
    res = await async_client.post(
        "/api/alert-definitions/eval",
        json={"dashboardId": 1, "panelId": 2, "refId": "B", "from": "now-10m", "to": "now", "skipCache": True},
        headers={"X-Org-Id": "1", "X-User-Id": "7", "X-User-Login": "admin"},
    )
    assert res.status_code == 200, res.text
    body = res.json()

    assert [i["labels"] for i in body["instances"]] == [{"host": "a"}, {"host": "b"}, {"host": "c"}]
    assert [i["state"] for i in body["instances"]] == ["Normal", "Alerting", "Alerting"]

    frame = body["frame"]
    assert frame["name"] == ""
    assert [f["values"] for f in frame["fields"]] == [[False], [True], [True]]
    assert all(f["type"] == "bool" for f in frame["fields"])

    assert directory.calls == [("ds-A", 1, True)]
    request = engine.requests[0]
    assert request.user.login == "admin"
    assert [q.ref_id for q in request.queries] == ["A", "B"]


@pytest.mark.anyio
async def test_eval_unknown_panel_is_404(async_client: httpx.AsyncClient, seeded):
    res = await async_client.post("/api/alert-definitions/eval", json={"dashboardId": 1, "panelId": 99, "refId": "B"})
    assert res.status_code == 404
    body = res.json()
    assert body["code"] == "panel_not_found"
    assert body["meta"] == {"dashboard_id": 1, "panel_id": 99}


@pytest.mark.anyio
async def test_eval_missing_result_is_422(async_client: httpx.AsyncClient, seeded):
    res = await async_client.post("/api/alert-definitions/eval", json={"dashboardId": 1, "panelId": 2, "refId": "C"})
    assert res.status_code == 422
    assert res.json()["code"] == "missing_result"


@pytest.mark.anyio
async def test_eval_duplicate_instances_is_422(async_client: httpx.AsyncClient, seeded, engine):
    engine.response = {"B": {"frames": [_scalar("x", 0.0, {"host": "a"}), _scalar("y", 1.0, {"host": "a"})]}}
    res = await async_client.post("/api/alert-definitions/eval", json={"dashboardId": 1, "panelId": 2, "refId": "B"})
    assert res.status_code == 422
    assert res.json()["code"] == "duplicate_instance"


@pytest.mark.anyio
async def test_eval_engine_failure_is_502(async_client: httpx.AsyncClient, seeded, engine):
    engine.error = RuntimeError("engine exploded")
    res = await async_client.post("/api/alert-definitions/eval", json={"dashboardId": 1, "panelId": 2, "refId": "B"})
    assert res.status_code == 502
    body = res.json()
    assert body["code"] == "engine_execution_error"
    assert "engine exploded" in body["detail"]


@pytest.mark.anyio
@pytest.mark.parametrize("raw_from", ["soon", "99999999999999999999"])
async def test_eval_bad_time_range_is_400(async_client: httpx.AsyncClient, seeded, raw_from):
    res = await async_client.post(
        "/api/alert-definitions/eval", json={"dashboardId": 1, "panelId": 2, "refId": "B", "from": raw_from}
    )
    assert res.status_code == 400
    assert res.json()["code"] == "invalid_time_range"


@pytest.mark.anyio
async def test_eval_inline_condition(async_client: httpx.AsyncClient, engine):
    engine.response = {"A": {"frames": [_scalar("A", 2.0, {"job": "api"})]}}
    payload = {
        "condition": {
            "refId": "A",
            "queriesAndExpressions": [{"refId": "A", "datasource": "ds-A", "datasourceId": 42, "model": {"expr": "up"}}],
        },
        "from": "now-1h",
        "to": "now",
    }
    res = await async_client.post("/api/alert-definitions/eval-condition", json=payload)
    assert res.status_code == 200, res.text
    assert res.json()["instances"] == [{"labels": {"job": "api"}, "state": "Alerting"}]


@pytest.mark.anyio
async def test_eval_inline_empty_condition_is_400(async_client: httpx.AsyncClient, engine):
    payload = {"condition": {"refId": "A", "queriesAndExpressions": []}}
    res = await async_client.post("/api/alert-definitions/eval-condition", json=payload)
    assert res.status_code == 400
    assert res.json()["code"] == "invalid_condition"
    assert engine.requests == []
