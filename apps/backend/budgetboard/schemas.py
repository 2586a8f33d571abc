from __future__ import annotations

import math
import re
from datetime import date, datetime
from typing import Any, Generic, Optional, TypeVar

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    field_validator,
    model_validator,
)

from .models import PlanType, RecurrenceType, SubscriptionStatus


T = TypeVar("T")

_HEX_COLOR = re.compile(r"^#[0-9A-Fa-f]{6}$")


class ApiResponse(BaseModel, Generic[T]):
    """Uniform envelope returned by every endpoint."""

    success: bool = True
    message: str = "OK"
    data: Optional[T] = None
    error: Optional[str] = None


# --- Categories -------------------------------------------------------------


def _validate_color(v: str) -> str:
    if not _HEX_COLOR.match(v):
        raise ValueError("color must be a #RRGGBB hex value")
    return v.upper()


class CategoryCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    color: str

    @field_validator("name")
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name must not be empty")
        return v

    @field_validator("color")
    def valid_color(cls, v: str) -> str:
        return _validate_color(v)


class CategoryUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    color: Optional[str] = None

    @field_validator("name")
    def strip_name(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("name must not be empty")
        return v

    @field_validator("color")
    def valid_color(cls, v: Optional[str]) -> Optional[str]:
        return _validate_color(v) if v is not None else v


class CategoryOut(BaseModel):
    id: int
    user_id: int
    name: str
    color: str
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class DefaultCategoriesIn(BaseModel):
    categories: list[CategoryCreate] = Field(min_length=1)


# --- Transactions -----------------------------------------------------------


def _coerce_recurrence(v: Any) -> Any:
    if isinstance(v, str):
        v = v.strip().lower()
        return v or None
    return v


class TransactionCreate(BaseModel):
    transaction_date: datetime = Field(validation_alias=AliasChoices("transaction_date", "date"))
    description: Optional[str] = Field(default=None, max_length=500)
    amount: float
    category_id: int = Field(validation_alias=AliasChoices("category_id", "category"))
    recurrence_type: Optional[RecurrenceType] = Field(
        default=None,
        validation_alias=AliasChoices("recurrence_type", "recurrenceType"),
    )
    recurrence_end_date: Optional[date] = Field(
        default=None,
        validation_alias=AliasChoices("recurrence_end_date", "recurrenceEndDate"),
    )

    model_config = ConfigDict(extra="ignore")

    @field_validator("recurrence_type", mode="before")
    def normalize_recurrence(cls, v: Any) -> Any:
        return _coerce_recurrence(v)

    @field_validator("recurrence_end_date", mode="before")
    def end_date_from_datetime(cls, v: Any) -> Any:
        # 클라이언트가 ISO datetime을 보내는 경우 날짜만 사용
        if isinstance(v, str) and "T" in v:
            return v.split("T", 1)[0]
        if isinstance(v, datetime):
            return v.date()
        return v

    @field_validator("amount")
    def validate_amount(cls, v: float) -> float:
        if not math.isfinite(v):
            raise ValueError("amount must be finite")
        return v

    @model_validator(mode="after")
    def validate_recurrence(self) -> "TransactionCreate":
        if self.recurrence_type is not None and self.recurrence_end_date is None:
            raise ValueError("recurrence_end_date is required when recurrence_type is set")
        if self.recurrence_type is None and self.recurrence_end_date is not None:
            raise ValueError("recurrence_type is required when recurrence_end_date is set")
        return self

    @property
    def is_recurrent(self) -> bool:
        return self.recurrence_type is not None


class TransactionUpdate(BaseModel):
    transaction_date: Optional[datetime] = Field(
        default=None,
        validation_alias=AliasChoices("transaction_date", "date"),
    )
    description: Optional[str] = Field(default=None, max_length=500)
    amount: Optional[float] = None
    category_id: Optional[int] = Field(default=None, validation_alias=AliasChoices("category_id", "category"))
    update_all: bool = Field(default=False, validation_alias=AliasChoices("update_all", "updateAll"))

    model_config = ConfigDict(extra="ignore")

    @field_validator("amount")
    def validate_amount(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and not math.isfinite(v):
            raise ValueError("amount must be finite")
        return v


class TransactionOut(BaseModel):
    id: int
    user_id: int
    transaction_date: datetime
    description: Optional[str]
    amount: float
    category_id: Optional[int]
    category_name: Optional[str] = None
    recurrence_type: Optional[RecurrenceType]
    recurrence_end_date: Optional[date]
    recurrence_id: Optional[str]
    is_original_recurrence: bool
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @computed_field(return_type=bool)
    def is_recurrent(self) -> bool:
        return self.recurrence_id is not None

    @computed_field(return_type=bool)
    def is_income(self) -> bool:
        return self.amount > 0


class DeleteResult(BaseModel):
    deleted: int
    recurrence_id: Optional[str] = None


# --- Summaries --------------------------------------------------------------


class MonthlyTotalOut(BaseModel):
    month: int
    income: float
    expense: float


class PeriodSummaryOut(BaseModel):
    year: int
    month: Optional[int] = None
    per_category_income: dict[str, float]
    per_category_expense: dict[str, float]
    total_income: float
    total_expense: float
    balance: float
    skipped: int = 0
    monthly: Optional[list[MonthlyTotalOut]] = None


# --- Subscriptions ----------------------------------------------------------


class PlanOut(BaseModel):
    price_id: str
    plan_type: PlanType
    name: str
    amount: float
    currency: str
    interval: str


class CheckoutSessionRequest(BaseModel):
    price_id: str = Field(min_length=1, validation_alias=AliasChoices("price_id", "priceId"))
    success_url: str = Field(min_length=1, validation_alias=AliasChoices("success_url", "successUrl"))
    cancel_url: str = Field(min_length=1, validation_alias=AliasChoices("cancel_url", "cancelUrl"))


class PortalSessionRequest(BaseModel):
    return_url: str = Field(min_length=1, validation_alias=AliasChoices("return_url", "returnUrl"))


class SessionUrlOut(BaseModel):
    url: str


class SubscriptionOut(BaseModel):
    status: SubscriptionStatus
    plan_type: PlanType
    current_period_start: Optional[datetime]
    current_period_end: Optional[datetime]
    canceled_at: Optional[datetime]
    is_active: bool = False
    has_customer: bool = False

    model_config = ConfigDict(from_attributes=True)
