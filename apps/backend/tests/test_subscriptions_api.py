from __future__ import annotations

from budgetboard import models


def _subscription(db_session) -> models.Subscription:
    return db_session.query(models.Subscription).filter_by(user_id=1).one()


def test_plans(client):
    data = client.get("/api/subscriptions/plans").json()["data"]
    assert {p["price_id"] for p in data} == {"price_monthly", "price_annual"}
    assert all(p["currency"] == "EUR" for p in data)


def test_current_subscription(client):
    data = client.get("/api/subscriptions/current").json()["data"]
    assert data["status"] == "trialing"
    assert data["plan_type"] == "trial"
    assert data["has_customer"] is False
    assert data["is_active"] is True


def test_current_missing(client):
    r = client.get("/api/subscriptions/current", headers={"X-User-Id": "2"})
    assert r.status_code == 404
    assert r.json()["error"] == "SUBSCRIPTION_NOT_FOUND"


def test_checkout_session(client, gateway):
    r = client.post(
        "/api/subscriptions/create-checkout-session",
        json={"priceId": "price_annual", "successUrl": "https://app/ok", "cancelUrl": "https://app/cancel"},
    )
    assert r.status_code == 200
    assert r.json()["data"] == {"url": "https://pay.example.test/checkout/price_annual"}
    kind, kwargs = gateway.calls[0]
    assert kind == "checkout"
    assert kwargs["client_reference"] == "1"
    assert kwargs["customer_ref"] is None


def test_checkout_unknown_price(client, gateway):
    r = client.post(
        "/api/subscriptions/create-checkout-session",
        json={"priceId": "price_lifetime", "successUrl": "https://app/ok", "cancelUrl": "https://app/cancel"},
    )
    assert r.status_code == 400
    assert r.json()["error"] == "INVALID_PRICE_ID"
    assert gateway.calls == []


def test_checkout_with_active_subscription(client, gateway, db_session):
    sub = _subscription(db_session)
    sub.status = models.SubscriptionStatus.ACTIVE
    db_session.commit()
    r = client.post(
        "/api/subscriptions/create-checkout-session",
        json={"priceId": "price_monthly", "successUrl": "https://app/ok", "cancelUrl": "https://app/cancel"},
    )
    assert r.status_code == 409
    assert r.json()["error"] == "ACTIVE_SUBSCRIPTION_EXISTS"


def test_checkout_gateway_failure(client, gateway):
    gateway.fail = True
    r = client.post(
        "/api/subscriptions/create-checkout-session",
        json={"priceId": "price_monthly", "successUrl": "https://app/ok", "cancelUrl": "https://app/cancel"},
    )
    assert r.status_code == 502
    assert r.json()["error"] == "CHECKOUT_ERROR"


def test_portal_requires_customer(client, gateway):
    r = client.post("/api/subscriptions/create-portal-session", json={"returnUrl": "https://app/settings"})
    assert r.status_code == 400
    assert r.json()["error"] == "MISSING_CUSTOMER_ID"


def test_portal_session(client, gateway, db_session):
    sub = _subscription(db_session)
    sub.customer_ref = "cus_123"
    db_session.commit()
    r = client.post("/api/subscriptions/create-portal-session", json={"returnUrl": "https://app/settings"})
    assert r.status_code == 200
    assert r.json()["data"]["url"] == "https://pay.example.test/portal"
    assert gateway.calls == [("portal", {"customer_ref": "cus_123", "return_url": "https://app/settings"})]

    gateway.fail = True
    r = client.post("/api/subscriptions/create-portal-session", json={"returnUrl": "https://app/settings"})
    assert r.status_code == 502
    assert r.json()["error"] == "PORTAL_ERROR"
