"""Subscription plans and hosted checkout/portal sessions.

The payment provider stays behind :class:`PaymentGateway`; this service only
decides *whether* a session may be opened and for which customer.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any

import httpx
from sqlalchemy.orm import Session

from budgetboard import models
from budgetboard.core.config import settings
from budgetboard.core.errors import ApiError, ErrorCode


log = logging.getLogger(__name__)


class GatewayError(Exception):
    """The payment provider could not open a session."""


class PaymentGateway(ABC):
    @abstractmethod
    def create_checkout_session(
        self,
        *,
        price_id: str,
        success_url: str,
        cancel_url: str,
        customer_ref: str | None,
        client_reference: str,
    ) -> str:
        """Open a hosted checkout and return the redirect URL."""

    @abstractmethod
    def create_portal_session(self, *, customer_ref: str, return_url: str) -> str:
        """Open the customer billing portal and return the redirect URL."""


class HttpPaymentGateway(PaymentGateway):
    """Talks to the billing proxy over HTTP (``BILLING_API_URL``)."""

    def __init__(self, base_url: str | None = None, api_key: str | None = None, timeout: float | None = None):
        self.base_url = (base_url or settings.BILLING_API_URL).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.BILLING_API_KEY
        self.timeout = timeout if timeout is not None else settings.BILLING_TIMEOUT

    def _post(self, path: str, payload: dict[str, Any]) -> str:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        try:
            with httpx.Client(timeout=self.timeout) as client:
                resp = client.post(f"{self.base_url}{path}", json=payload, headers=headers)
                resp.raise_for_status()
                body = resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise GatewayError(str(exc)) from exc
        url = body.get("url") if isinstance(body, dict) else None
        if not url:
            raise GatewayError("billing response did not include a url")
        return url

    def create_checkout_session(self, *, price_id, success_url, cancel_url, customer_ref, client_reference) -> str:
        return self._post(
            "/checkout-sessions",
            {
                "price_id": price_id,
                "success_url": success_url,
                "cancel_url": cancel_url,
                "customer": customer_ref,
                "client_reference_id": client_reference,
            },
        )

    def create_portal_session(self, *, customer_ref, return_url) -> str:
        return self._post("/portal-sessions", {"customer": customer_ref, "return_url": return_url})


def get_payment_gateway() -> PaymentGateway:
    return HttpPaymentGateway()


class SubscriptionService:
    def __init__(self, db: Session, gateway: PaymentGateway) -> None:
        self.db = db
        self.gateway = gateway

    @staticmethod
    def list_plans() -> list[dict[str, Any]]:
        return [dict(plan) for plan in settings.SUBSCRIPTION_PLANS]

    def _find_plan(self, price_id: str) -> dict[str, Any]:
        for plan in self.list_plans():
            if plan.get("price_id") == price_id:
                return plan
        raise ApiError(400, ErrorCode.INVALID_PRICE_ID, f"Unknown price id '{price_id}'")

    def current(self, user: models.User) -> models.Subscription:
        sub = self.db.query(models.Subscription).filter(models.Subscription.user_id == user.id).first()
        if sub is None:
            raise ApiError(404, ErrorCode.SUBSCRIPTION_NOT_FOUND, "No subscription for this user")
        return sub

    def create_checkout_session(self, user: models.User, *, price_id: str, success_url: str, cancel_url: str) -> str:
        plan = self._find_plan(price_id)
        sub = self.db.query(models.Subscription).filter(models.Subscription.user_id == user.id).first()
        # trial은 업그레이드 허용
        if sub is not None and sub.status == models.SubscriptionStatus.ACTIVE:
            raise ApiError(409, ErrorCode.ACTIVE_SUBSCRIPTION_EXISTS, "You already have an active subscription")
        try:
            url = self.gateway.create_checkout_session(
                price_id=price_id,
                success_url=success_url,
                cancel_url=cancel_url,
                customer_ref=sub.customer_ref if sub else None,
                client_reference=str(user.id),
            )
        except GatewayError as exc:
            log.error("checkout session failed for user %s plan %s: %s", user.id, plan["plan_type"], exc)
            raise ApiError(502, ErrorCode.CHECKOUT_ERROR, "Could not start checkout. Please try again.") from exc
        log.info("checkout session opened for user %s plan %s", user.id, plan["plan_type"])
        return url

    def create_portal_session(self, user: models.User, *, return_url: str) -> str:
        sub = self.db.query(models.Subscription).filter(models.Subscription.user_id == user.id).first()
        if sub is None or not sub.customer_ref:
            raise ApiError(400, ErrorCode.MISSING_CUSTOMER_ID, "No billing customer linked to this account")
        try:
            return self.gateway.create_portal_session(customer_ref=sub.customer_ref, return_url=return_url)
        except GatewayError as exc:
            log.error("portal session failed for user %s: %s", user.id, exc)
            raise ApiError(502, ErrorCode.PORTAL_ERROR, "Could not open the billing portal. Please try again.") from exc
