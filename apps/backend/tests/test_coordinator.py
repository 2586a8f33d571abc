from __future__ import annotations

from datetime import date, datetime

import pytest

from budgetboard.client.api import ApiRequestError
from budgetboard.client.coordinator import (
    Applying,
    ChoosingScope,
    Committed,
    ConfirmingDelete,
    CoordinatorBusy,
    Creating,
    Editing,
    Failed,
    Idle,
    MutationCoordinator,
    PendingScopeChoice,
)
from budgetboard.client.forms import FormValidationError, TransactionDraft


CATEGORIES = [{"id": 1, "name": "Salary"}, {"id": 2, "name": "Groceries"}]

PLAIN = {"id": 10, "amount": -5.0, "category_id": 2, "recurrence_id": None}
GROUPED = {"id": 20, "amount": -30.0, "category_id": 2, "recurrence_id": "abc123"}


class FakeTransactions:
    def __init__(self) -> None:
        self.calls: list[tuple] = []
        self.error: Exception | None = None

    def _record(self, *call):
        self.calls.append(call)
        if self.error is not None:
            raise self.error

    def create(self, payload):
        self._record("create", payload)
        return [dict(payload, id=1)]

    def update(self, txn_id, payload):
        self._record("update", txn_id, payload)
        return [dict(payload, id=txn_id)]

    def delete(self, txn_id, *, delete_all=False):
        self._record("delete", txn_id, delete_all)
        return {"deleted": 3 if delete_all else 1}


class FakeApi:
    def __init__(self) -> None:
        self.transactions = FakeTransactions()


@pytest.fixture()
def api():
    return FakeApi()


@pytest.fixture()
def seen():
    return []


@pytest.fixture()
def coordinator(api, seen):
    return MutationCoordinator(api, categories=list(CATEGORIES), on_change=seen.append)


def _draft(**kw):
    base = dict(transaction_date=datetime(2024, 3, 1, 10, 0), amount="40", category_id=2, description="Gym")
    base.update(kw)
    return TransactionDraft(**base)


def test_plain_edit_goes_straight_to_applying(coordinator, api, seen):
    outcome = coordinator.request_edit(PLAIN, _draft())
    assert isinstance(outcome, Committed)
    assert [type(s) for s in seen] == [Applying, Committed, Idle]
    assert not any(isinstance(s, PendingScopeChoice) for s in seen)
    kind, txn_id, payload = api.transactions.calls[0]
    assert (kind, txn_id) == ("update", 10)
    assert payload["update_all"] is False
    assert payload["date"] == datetime(2024, 3, 1, 10, 0)
    assert isinstance(coordinator.state, Idle)


def test_grouped_edit_waits_for_choice(coordinator, api):
    state = coordinator.request_edit(GROUPED, _draft())
    assert isinstance(state, PendingScopeChoice)
    assert api.transactions.calls == []
    assert coordinator.form_mode == ChoosingScope(GROUPED, "edit")


def test_group_edit_excludes_date(coordinator, api):
    coordinator.request_edit(GROUPED, _draft(amount="45"))
    outcome = coordinator.choose(apply_to_all=True)
    assert isinstance(outcome, Committed)
    _, txn_id, payload = api.transactions.calls[0]
    assert txn_id == 20
    assert "date" not in payload
    assert payload == {"description": "Gym", "amount": -45.0, "category_id": 2, "update_all": True}


def test_single_occurrence_edit_includes_date(coordinator, api):
    coordinator.request_edit(GROUPED, _draft())
    coordinator.choose(apply_to_all=False)
    _, _, payload = api.transactions.calls[0]
    assert payload["update_all"] is False
    assert payload["date"] == datetime(2024, 3, 1, 10, 0)


def test_delete_scopes(coordinator, api):
    assert isinstance(coordinator.request_delete(PLAIN), Committed)
    assert isinstance(coordinator.request_delete(GROUPED), PendingScopeChoice)
    assert coordinator.form_mode == ChoosingScope(GROUPED, "delete")
    outcome = coordinator.choose(apply_to_all=True)
    assert outcome == Committed("delete", {"deleted": 3})
    assert api.transactions.calls == [("delete", 10, False), ("delete", 20, True)]


def test_cancel_returns_to_idle_without_request(coordinator, api):
    coordinator.request_delete(GROUPED)
    coordinator.cancel()
    assert isinstance(coordinator.state, Idle)
    assert api.transactions.calls == []
    assert coordinator.form_mode == Creating()
    with pytest.raises(CoordinatorBusy):
        coordinator.choose(apply_to_all=True)


def test_invalid_draft_never_reaches_choice_or_network(coordinator, api, seen):
    with pytest.raises(FormValidationError) as info:
        coordinator.request_edit(GROUPED, _draft(amount="abc"))
    assert info.value.field == "amount"
    with pytest.raises(FormValidationError):
        coordinator.request_edit(GROUPED, _draft(category_id=99))
    assert seen == []
    assert api.transactions.calls == []
    assert isinstance(coordinator.state, Idle)


def test_failure_is_classified_and_returns_to_idle(coordinator, api, seen):
    api.transactions.error = ApiRequestError(404, "TRANSACTION_NOT_FOUND", "Transaction not found")
    outcome = coordinator.request_delete(PLAIN)
    assert isinstance(outcome, Failed)
    assert outcome.notice.level == "warning"
    assert outcome.notice.error == "TRANSACTION_NOT_FOUND"
    assert isinstance(coordinator.state, Idle)
    assert coordinator.last_outcome is outcome
    assert [type(s) for s in seen] == [Applying, Failed, Idle]
    # 실패 후 폼 유지
    assert coordinator.form_mode == ConfirmingDelete(PLAIN)


def test_connection_failure(coordinator, api):
    api.transactions.error = ApiRequestError(0, "CONNECTION_ERROR", "unreachable")
    outcome = coordinator.submit_create(_draft())
    assert isinstance(outcome, Failed)
    assert outcome.notice.error == "CONNECTION_ERROR"


def test_submit_create_recurring(coordinator, api):
    draft = _draft(recurrence_enabled=True, recurrence_type="weekly", recurrence_end_date=date(2024, 3, 29), is_income=True)
    outcome = coordinator.submit_create(draft)
    assert isinstance(outcome, Committed)
    kind, payload = api.transactions.calls[0]
    assert kind == "create"
    assert payload["amount"] == 40.0
    assert payload["recurrence_type"] == "weekly"
    assert payload["recurrence_end_date"] == date(2024, 3, 29)


def test_submit_create_validates_recurrence(coordinator, api):
    with pytest.raises(FormValidationError) as info:
        coordinator.submit_create(_draft(recurrence_enabled=True, recurrence_type="weekly"))
    assert info.value.field == "recurrence_end_date"
    assert api.transactions.calls == []


def test_form_mode_tracks_flow(coordinator):
    assert coordinator.form_mode == Creating()
    coordinator.begin_edit(PLAIN)
    assert coordinator.form_mode == Editing(PLAIN)
    coordinator.begin_delete(GROUPED)
    assert coordinator.form_mode == ConfirmingDelete(GROUPED)
    coordinator.request_edit(PLAIN, _draft())
    assert coordinator.form_mode == Creating()


def test_one_mutation_at_a_time(coordinator):
    coordinator.request_delete(GROUPED)
    with pytest.raises(CoordinatorBusy):
        coordinator.request_delete(PLAIN)
    with pytest.raises(CoordinatorBusy):
        coordinator.submit_create(_draft())


def test_group_edit_survives_category_reload(coordinator, api, seen):
    coordinator.request_edit(GROUPED, _draft())
    # 선택 대기 중 카테고리 목록이 새로고침됨
    coordinator.set_categories([CATEGORIES[0]])
    outcome = coordinator.choose(apply_to_all=True)
    assert isinstance(outcome, Committed)
    assert isinstance(coordinator.state, Idle)
    _, _, payload = api.transactions.calls[0]
    assert "date" not in payload
    assert payload["category_id"] == 2
    assert payload["update_all"] is True
    assert [type(s) for s in seen] == [PendingScopeChoice, Applying, Committed, Idle]


def test_unexpected_error_still_ends_idle(coordinator, api, seen):
    api.transactions.error = RuntimeError("boom")
    outcome = coordinator.request_delete(PLAIN)
    assert isinstance(outcome, Failed)
    assert outcome.notice.error == "SERVER_ERROR"
    assert isinstance(coordinator.state, Idle)
    assert [type(s) for s in seen] == [Applying, Failed, Idle]

    api.transactions.error = None
    assert isinstance(coordinator.request_delete(PLAIN), Committed)


def test_oversized_amount_is_rejected_before_request(coordinator, api, seen):
    with pytest.raises(FormValidationError) as info:
        coordinator.submit_create(_draft(amount="1e400"))
    assert info.value.field == "amount"
    assert api.transactions.calls == []
    assert seen == []
    assert isinstance(coordinator.state, Idle)
