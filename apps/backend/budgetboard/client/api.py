"""Thin httpx wrappers around the Budgetboard API.

Every call unwraps the ``{success, message, data, error}`` envelope and returns
``data``. Non-2xx answers raise :class:`ApiRequestError` carrying the status and
the server's classification code; transport failures are reported with status
``0`` and ``CONNECTION_ERROR``.
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any, Optional

import httpx

from budgetboard.core.config import settings
from budgetboard.core.errors import ErrorCode


log = logging.getLogger(__name__)

_STATUS_FALLBACK = {
    400: ErrorCode.INVALID_DATA,
    401: ErrorCode.UNAUTHORIZED,
    403: ErrorCode.UNAUTHORIZED,
    404: ErrorCode.NOT_FOUND,
}


class ApiRequestError(Exception):
    """A request the API refused, or one that never reached it."""

    def __init__(self, status_code: int, error: str, message: str, *, details: Any = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.error = error
        self.message = message
        self.details = details

    def __repr__(self) -> str:
        return f"ApiRequestError({self.status_code}, {self.error!r}, {self.message!r})"


def _iso(value: date | datetime | str | None) -> Optional[str]:
    if value is None or isinstance(value, str):
        return value
    return value.isoformat()


class BudgetboardClient:
    """Entry point: ``client.transactions``, ``client.categories``, ...

    ``http`` may be any ``httpx.Client`` (a FastAPI ``TestClient`` included);
    when omitted one is created for ``base_url`` and closed by :meth:`close`.
    """

    def __init__(
        self,
        base_url: str | None = None,
        *,
        http: httpx.Client | None = None,
        timeout: float | None = None,
        user_id: int | None = None,
    ) -> None:
        self._owns_http = http is None
        if http is None:
            http = httpx.Client(
                base_url=(base_url or settings.API_URL).rstrip("/"),
                timeout=timeout if timeout is not None else settings.API_TIMEOUT,
            )
        self._http = http
        self.user_id = user_id
        self.transactions = TransactionsApi(self)
        self.categories = CategoriesApi(self)
        self.subscriptions = SubscriptionsApi(self)
        self.summaries = SummariesApi(self)

    def __enter__(self) -> "BudgetboardClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def close(self) -> None:
        if self._owns_http:
            self._http.close()

    def request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        headers = {"X-User-Id": str(self.user_id)} if self.user_id is not None else None
        try:
            resp = self._http.request(method, path, json=json, params=params, headers=headers)
        except httpx.HTTPError as exc:
            log.warning("%s %s failed before a response: %s", method, path, exc)
            raise ApiRequestError(
                0,
                ErrorCode.CONNECTION_ERROR.value,
                "Could not reach the server. Check your connection.",
            ) from exc
        except (TypeError, ValueError) as exc:
            # body could not be encoded (e.g. NaN / inf); nothing was sent
            log.warning("%s %s not sent: %s", method, path, exc)
            raise ApiRequestError(
                0,
                ErrorCode.INVALID_DATA.value,
                "The request contains values that cannot be sent.",
            ) from exc

        try:
            body = resp.json()
        except ValueError:
            body = None
        if not isinstance(body, dict):
            body = {}

        if resp.is_success and body.get("success", True):
            return body.get("data")

        fallback = _STATUS_FALLBACK.get(resp.status_code, ErrorCode.SERVER_ERROR)
        raise ApiRequestError(
            resp.status_code,
            body.get("error") or fallback.value,
            body.get("message") or resp.reason_phrase or "Request failed",
            details=body.get("details"),
        )


class _Resource:
    prefix = ""

    def __init__(self, client: BudgetboardClient) -> None:
        self._client = client

    def _call(self, method: str, path: str = "", **kwargs: Any) -> Any:
        return self._client.request(method, f"/api/{self.prefix}{path}", **kwargs)


class TransactionsApi(_Resource):
    prefix = "transactions"

    def list_all(self) -> list[dict[str, Any]]:
        return self._call("GET", "/all")

    def list_year(self, year: int) -> list[dict[str, Any]]:
        return self._call("GET", f"/{year}")

    def list_month(self, year: int, month: int) -> list[dict[str, Any]]:
        return self._call("GET", f"/{year}/{month}")

    def list_by_category(self, category_id: int) -> list[dict[str, Any]]:
        return self._call("GET", f"/category/{category_id}")

    def create(self, payload: dict[str, Any]) -> list[dict[str, Any]]:
        body = dict(payload)
        for key in ("date", "recurrence_end_date"):
            if key in body:
                body[key] = _iso(body[key])
        return self._call("POST", "/create", json=body)

    def update(self, txn_id: int, payload: dict[str, Any]) -> list[dict[str, Any]]:
        body = dict(payload)
        if "date" in body:
            body["date"] = _iso(body["date"])
        return self._call("PUT", f"/{txn_id}", json=body)

    def delete(self, txn_id: int, *, delete_all: bool = False) -> dict[str, Any]:
        return self._call("DELETE", f"/{txn_id}", params={"delete_all": str(delete_all).lower()})


class CategoriesApi(_Resource):
    prefix = "categories"

    def list_all(self) -> list[dict[str, Any]]:
        return self._call("GET", "/all")

    def colors(self) -> list[str]:
        return self._call("GET", "/colors")

    def create(self, name: str, color: str) -> dict[str, Any]:
        return self._call("POST", "/create", json={"name": name, "color": color})

    def create_defaults(self, categories: list[dict[str, str]]) -> list[dict[str, Any]]:
        return self._call("POST", "/default", json={"categories": categories})

    def update(self, category_id: int, **fields: Any) -> dict[str, Any]:
        return self._call("PUT", f"/{category_id}", json=fields)

    def delete(self, category_id: int, *, reassign_to: int | None = None, force: bool = False) -> dict[str, Any]:
        params: dict[str, Any] = {"force": str(force).lower()}
        if reassign_to is not None:
            params["reassign_to"] = reassign_to
        return self._call("DELETE", f"/{category_id}", params=params)


class SubscriptionsApi(_Resource):
    prefix = "subscriptions"

    def plans(self) -> list[dict[str, Any]]:
        return self._call("GET", "/plans")

    def current(self) -> dict[str, Any]:
        return self._call("GET", "/current")

    def create_checkout_session(self, price_id: str, success_url: str, cancel_url: str) -> str:
        data = self._call(
            "POST",
            "/create-checkout-session",
            json={"priceId": price_id, "successUrl": success_url, "cancelUrl": cancel_url},
        )
        return data["url"]

    def create_portal_session(self, return_url: str) -> str:
        data = self._call("POST", "/create-portal-session", json={"returnUrl": return_url})
        return data["url"]


class SummariesApi(_Resource):
    prefix = "summaries"

    def annual(self, year: int) -> dict[str, Any]:
        return self._call("GET", f"/{year}")

    def monthly(self, year: int, month: int) -> dict[str, Any]:
        return self._call("GET", f"/{year}/{month}")
