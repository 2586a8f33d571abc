from __future__ import annotations


def _create(client, **overrides):
    payload = {
        "date": "2024-03-10T12:00:00",
        "description": "Weekly shop",
        "amount": -42.5,
        "category_id": overrides.pop("category_id"),
    }
    payload.update(overrides)
    return client.post("/api/transactions/create", json=payload)


def test_create_then_list_contains_payload(client, categories):
    groceries = categories["Groceries"]
    r = _create(client, category_id=groceries["id"])
    assert r.status_code == 201
    body = r.json()
    assert body["success"] is True
    assert len(body["data"]) == 1
    created = body["data"][0]
    assert created["recurrence_id"] is None
    assert created["is_recurrent"] is False
    assert created["is_income"] is False

    listed = client.get("/api/transactions/all").json()["data"]
    match = [t for t in listed if t["id"] == created["id"]]
    assert match
    t = match[0]
    assert t["transaction_date"].startswith("2024-03-10T12:00:00")
    assert t["amount"] == -42.5
    assert t["category_id"] == groceries["id"]
    assert t["category_name"] == "Groceries"
    assert t["description"] == "Weekly shop"


def test_empty_description_defaults_to_category_name(client, categories):
    r = _create(client, category_id=categories["Salary"]["id"], description="  ", amount=1500)
    assert r.status_code == 201
    assert r.json()["data"][0]["description"] == "Salary"


def test_create_accepts_aliases(client, categories):
    r = client.post(
        "/api/transactions/create",
        json={
            "date": "2024-01-31T08:00:00",
            "amount": 900,
            "category": categories["Salary"]["id"],
            "recurrenceType": "MONTHLY",
            "recurrenceEndDate": "2024-04-30T00:00:00.000Z",
        },
    )
    assert r.status_code == 201
    data = r.json()["data"]
    assert [t["transaction_date"][:10] for t in data] == ["2024-01-31", "2024-02-29", "2024-03-31", "2024-04-30"]


def test_recurring_create_builds_group(client, categories):
    r = _create(
        client,
        category_id=categories["Groceries"]["id"],
        date="2024-01-01T09:00:00",
        recurrence_type="weekly",
        recurrence_end_date="2024-01-29",
    )
    assert r.status_code == 201
    data = r.json()["data"]
    assert len(data) == 5
    assert "5 recurring" in r.json()["message"]
    group = {t["recurrence_id"] for t in data}
    assert len(group) == 1 and None not in group
    assert [t["is_original_recurrence"] for t in data] == [True, False, False, False, False]
    assert all(t["recurrence_type"] == "weekly" for t in data)
    assert all(t["recurrence_end_date"] == "2024-01-29" for t in data)


def test_recurrence_end_before_start_rejected(client, categories):
    r = _create(
        client,
        category_id=categories["Groceries"]["id"],
        recurrence_type="monthly",
        recurrence_end_date="2024-03-01",
    )
    assert r.status_code == 400
    assert r.json()["error"] == "INVALID_DATE"
    assert client.get("/api/transactions/all").json()["data"] == []


def test_recurrence_requires_end_date(client, categories):
    r = _create(client, category_id=categories["Groceries"]["id"], recurrence_type="monthly")
    assert r.status_code == 400
    body = r.json()
    assert body["success"] is False
    assert body["error"] == "INVALID_DATA"


def test_too_many_occurrences(client, categories, monkeypatch):
    from budgetboard.core.config import settings

    monkeypatch.setattr(settings, "MAX_RECURRENCE_OCCURRENCES", 3)
    r = _create(
        client,
        category_id=categories["Groceries"]["id"],
        date="2024-01-01T00:00:00",
        recurrence_type="weekly",
        recurrence_end_date="2024-12-31",
    )
    assert r.status_code == 400
    assert r.json()["error"] == "TOO_MANY_OCCURRENCES"


def test_far_future_recurrence_is_refused(client, categories):
    r = _create(
        client,
        category_id=categories["Groceries"]["id"],
        date="2024-01-01T00:00:00",
        recurrence_type="weekly",
        recurrence_end_date="9999-12-31",
    )
    assert r.status_code == 400
    assert r.json()["error"] == "TOO_MANY_OCCURRENCES"
    assert client.get("/api/transactions/all").json()["data"] == []


def test_missing_fields(client):
    r = client.post("/api/transactions/create", json={"description": "nothing else"})
    assert r.status_code == 400
    body = r.json()
    assert body["error"] == "MISSING_FIELDS"
    assert len(body["details"]) == 3
    assert "amount" in {d["field"] for d in body["details"]}


def test_invalid_amount(client, categories):
    r = _create(client, category_id=categories["Groceries"]["id"], amount="abc")
    assert r.status_code == 400
    assert r.json()["error"] == "INVALID_DATA"


def test_unknown_or_foreign_category(client, db_session):
    from budgetboard import models

    foreign = db_session.query(models.Category).filter_by(user_id=2).one()
    for category_id in (9999, foreign.id):
        r = _create(client, category_id=category_id)
        assert r.status_code == 404
        assert r.json()["error"] == "CATEGORY_NOT_FOUND"


def test_period_and_category_listing(client, categories):
    groceries = categories["Groceries"]["id"]
    salary = categories["Salary"]["id"]
    _create(client, category_id=groceries, date="2024-03-10T12:00:00")
    _create(client, category_id=groceries, date="2024-04-02T12:00:00")
    _create(client, category_id=salary, date="2024-03-25T12:00:00", amount=2000)
    _create(client, category_id=salary, date="2023-12-31T23:30:00", amount=2000)

    march = client.get("/api/transactions/2024/3").json()["data"]
    assert len(march) == 2
    # 최신 날짜 우선
    assert march[0]["transaction_date"] > march[1]["transaction_date"]

    year = client.get("/api/transactions/2024").json()["data"]
    assert len(year) == 3

    by_cat = client.get(f"/api/transactions/category/{salary}").json()["data"]
    assert {t["transaction_date"][:4] for t in by_cat} == {"2023", "2024"}

    r = client.get("/api/transactions/2024/13")
    assert r.status_code == 400
    assert r.json()["error"] == "INVALID_DATE"


def test_year_out_of_range_is_invalid_date(client):
    for path in ("/api/transactions/9999", "/api/transactions/0", "/api/transactions/9999/12", "/api/summaries/9999"):
        r = client.get(path)
        assert r.status_code == 400, path
        assert r.json()["error"] == "INVALID_DATE"


def test_delete_twice_reports_not_found(client, categories):
    created = _create(client, category_id=categories["Groceries"]["id"]).json()["data"][0]
    first = client.delete(f"/api/transactions/{created['id']}")
    assert first.status_code == 200
    assert first.json()["data"] == {"deleted": 1, "recurrence_id": None}

    second = client.delete(f"/api/transactions/{created['id']}")
    assert second.status_code == 404
    body = second.json()
    assert body["success"] is False
    assert body["error"] == "TRANSACTION_NOT_FOUND"


def test_other_users_transactions_are_invisible(client, categories):
    created = _create(client, category_id=categories["Groceries"]["id"]).json()["data"][0]
    r = client.get("/api/transactions/all", headers={"X-User-Id": "2"})
    assert r.status_code == 200
    assert r.json()["data"] == []
    r = client.delete(f"/api/transactions/{created['id']}", headers={"X-User-Id": "2"})
    assert r.status_code == 404


def test_unknown_user_header_is_unauthorized(client):
    r = client.get("/api/transactions/all", headers={"X-User-Id": "404"})
    assert r.status_code == 401
    assert r.json() == {
        "success": False,
        "message": "Session expired. Please sign in again.",
        "error": "UNAUTHORIZED",
    }


def test_unknown_route_uses_envelope(client):
    r = client.get("/api/does-not-exist")
    assert r.status_code == 404
    assert r.json()["error"] == "NOT_FOUND"


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}
