"""Create/edit/delete flow for transactions, including the single-vs-group choice.

A mutation of an occurrence that belongs to a recurrence group first stops in
:class:`PendingScopeChoice`; the caller answers with :meth:`MutationCoordinator.choose`.
Everything else goes straight to :class:`Applying`. The outcome of a call
(:class:`Committed` or :class:`Failed`) is returned and published, after which
the coordinator is ``Idle`` again. Nothing is changed locally on failure; the
caller reloads from the API after a commit.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Literal, Mapping, Optional, Union

from .api import ApiRequestError
from .feedback import Notice, classify_error
from .forms import TransactionDraft, build_payload


log = logging.getLogger(__name__)

Action = Literal["create", "edit", "delete"]


# ---- Coordinator states ----------------------------------------------------
@dataclass(frozen=True)
class Idle:
    pass


@dataclass(frozen=True)
class PendingScopeChoice:
    target: Mapping[str, Any]
    action: Action
    draft: Optional[TransactionDraft] = None
    payload: Optional[dict[str, Any]] = None


@dataclass(frozen=True)
class Applying:
    target: Optional[Mapping[str, Any]]
    action: Action
    apply_to_all: bool = False


@dataclass(frozen=True)
class Committed:
    action: Action
    data: Any = None


@dataclass(frozen=True)
class Failed:
    action: Action
    error: Exception
    notice: Notice


State = Union[Idle, PendingScopeChoice, Applying, Committed, Failed]


# ---- Form modes ------------------------------------------------------------
@dataclass(frozen=True)
class Creating:
    pass


@dataclass(frozen=True)
class Editing:
    target: Mapping[str, Any]


@dataclass(frozen=True)
class ConfirmingDelete:
    target: Mapping[str, Any]


@dataclass(frozen=True)
class ChoosingScope:
    target: Mapping[str, Any]
    action: Action


FormMode = Union[Creating, Editing, ConfirmingDelete, ChoosingScope]


def is_grouped(target: Mapping[str, Any]) -> bool:
    return bool(target.get("recurrence_id"))


class CoordinatorBusy(RuntimeError):
    """Another mutation is already waiting for a choice or in flight."""


@dataclass
class MutationCoordinator:
    api: Any
    categories: list[Mapping[str, Any]] = field(default_factory=list)
    on_change: Optional[Callable[[State], None]] = None

    state: State = field(default_factory=Idle, init=False)
    last_outcome: Optional[Union[Committed, Failed]] = field(default=None, init=False)
    _form: FormMode = field(default_factory=Creating, init=False)

    # ---- form mode -------------------------------------------------------
    @property
    def form_mode(self) -> FormMode:
        if isinstance(self.state, PendingScopeChoice):
            return ChoosingScope(self.state.target, self.state.action)
        return self._form

    def begin_create(self) -> None:
        self._require_idle()
        self._form = Creating()

    def begin_edit(self, target: Mapping[str, Any]) -> None:
        self._require_idle()
        self._form = Editing(target)

    def begin_delete(self, target: Mapping[str, Any]) -> None:
        self._require_idle()
        self._form = ConfirmingDelete(target)

    # ---- requests --------------------------------------------------------
    def set_categories(self, categories: Iterable[Mapping[str, Any]]) -> None:
        self.categories = list(categories)

    def submit_create(self, draft: TransactionDraft) -> State:
        self._require_idle()
        payload = build_payload(draft, self.categories, creating=True)
        return self._apply(None, "create", False, payload=payload)

    def request_edit(self, target: Mapping[str, Any], draft: TransactionDraft) -> State:
        self._require_idle()
        # 검증은 선택 단계 전에 한 번만
        payload = build_payload(draft, self.categories, creating=False)
        self._form = Editing(target)
        if is_grouped(target):
            return self._transition(PendingScopeChoice(target, "edit", draft, payload))
        return self._apply(target, "edit", False, payload=payload)

    def request_delete(self, target: Mapping[str, Any]) -> State:
        self._require_idle()
        self._form = ConfirmingDelete(target)
        if is_grouped(target):
            return self._transition(PendingScopeChoice(target, "delete"))
        return self._apply(target, "delete", False)

    def choose(self, apply_to_all: bool) -> State:
        pending = self.state
        if not isinstance(pending, PendingScopeChoice):
            raise CoordinatorBusy("no scope choice is pending")
        return self._apply(pending.target, pending.action, apply_to_all, payload=pending.payload)

    def cancel(self) -> None:
        if isinstance(self.state, PendingScopeChoice):
            self._form = Creating()
            self._transition(Idle())

    # ---- internals -------------------------------------------------------
    def _require_idle(self) -> None:
        if not isinstance(self.state, Idle):
            raise CoordinatorBusy(f"coordinator is {type(self.state).__name__}")

    def _transition(self, state: State) -> State:
        self.state = state
        if self.on_change is not None:
            self.on_change(state)
        return state

    def _request(
        self,
        target: Optional[Mapping[str, Any]],
        action: Action,
        apply_to_all: bool,
        payload: Optional[dict[str, Any]],
    ) -> Any:
        txns = self.api.transactions
        if action == "create":
            return txns.create(payload)
        assert target is not None
        if action == "delete":
            return txns.delete(target["id"], delete_all=apply_to_all)
        body = dict(payload or {})
        if apply_to_all:
            # 그룹 수정은 날짜를 보내지 않음
            body.pop("date", None)
        body["update_all"] = apply_to_all
        return txns.update(target["id"], body)

    def _apply(
        self,
        target: Optional[Mapping[str, Any]],
        action: Action,
        apply_to_all: bool,
        *,
        payload: Optional[dict[str, Any]] = None,
    ) -> State:
        self._transition(Applying(target, action, apply_to_all))
        outcome: Union[Committed, Failed]
        try:
            try:
                data = self._request(target, action, apply_to_all, payload)
            except ApiRequestError as exc:
                log.warning("%s failed: %s %s", action, exc.status_code, exc.error)
                outcome = Failed(action, exc, classify_error(exc))
            except Exception as exc:
                log.exception("%s failed before the request completed", action)
                outcome = Failed(action, exc, classify_error(exc))
            else:
                outcome = Committed(action, data)
                self._form = Creating()
            self.last_outcome = outcome
            self._transition(outcome)
        finally:
            self._transition(Idle())
        return outcome
