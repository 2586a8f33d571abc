from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from budgetboard.core.database import get_db
from budgetboard.core.deps import get_current_user
from budgetboard.schemas import (
    ApiResponse,
    CheckoutSessionRequest,
    PlanOut,
    PortalSessionRequest,
    SessionUrlOut,
    SubscriptionOut,
)
from budgetboard.services.subscription_service import (
    PaymentGateway,
    SubscriptionService,
    get_payment_gateway,
)


router = APIRouter(prefix="/subscriptions", tags=["subscriptions"])


def _service(db: Session = Depends(get_db), gateway: PaymentGateway = Depends(get_payment_gateway)) -> SubscriptionService:
    return SubscriptionService(db, gateway)


@router.get("/plans", response_model=ApiResponse[list[PlanOut]])
def list_plans():
    plans = [PlanOut.model_validate(p) for p in SubscriptionService.list_plans()]
    return ApiResponse(data=plans, message="Plans retrieved")


@router.get("/current", response_model=ApiResponse[SubscriptionOut])
def current_subscription(svc: SubscriptionService = Depends(_service), current_user=Depends(get_current_user)):
    sub = svc.current(current_user)
    out = SubscriptionOut.model_validate(sub).model_copy(update={"has_customer": bool(sub.customer_ref)})
    return ApiResponse(data=out)


@router.post("/create-checkout-session", response_model=ApiResponse[SessionUrlOut])
def create_checkout_session(
    payload: CheckoutSessionRequest,
    svc: SubscriptionService = Depends(_service),
    current_user=Depends(get_current_user),
):
    url = svc.create_checkout_session(
        current_user,
        price_id=payload.price_id,
        success_url=payload.success_url,
        cancel_url=payload.cancel_url,
    )
    return ApiResponse(data=SessionUrlOut(url=url), message="Checkout session created")


@router.post("/create-portal-session", response_model=ApiResponse[SessionUrlOut])
def create_portal_session(
    payload: PortalSessionRequest,
    svc: SubscriptionService = Depends(_service),
    current_user=Depends(get_current_user),
):
    url = svc.create_portal_session(current_user, return_url=payload.return_url)
    return ApiResponse(data=SessionUrlOut(url=url), message="Portal session created")
