"""Tests for commits, getters, watchers and strict mode."""

from __future__ import annotations

import logging
from typing import Any

import pytest

from pystatetree import (
    ActionSubscriber,
    CommitOptions,
    Mutation,
    ReactiveBackend,
    Store,
    StoreConfig,
    StorePhase,
    StoreUsageError,
)

STORE_LOGGER = "pystatetree.store"


def _increment(state: Any, amount: Any) -> None:
    state["count"] += 1 if amount is None else amount


def _counter(**extra: Any) -> dict[str, Any]:
    options: dict[str, Any] = {
        "state": {"count": 1},
        "getters": {"double": lambda state: state["count"] * 2},
        "mutations": {"increment": _increment},
    }
    options.update(extra)
    return options


def _messages(caplog: pytest.LogCaptureFixture) -> list[str]:
    return [record.getMessage() for record in caplog.records]


# ------------------------------------------------------------------
# Construction
# ------------------------------------------------------------------


def test_empty_store() -> None:
    store = Store()
    assert store.state == {}
    assert len(store.getters) == 0
    assert store.phase is StorePhase.INSTALLED


def test_backend_must_satisfy_protocol() -> None:
    with pytest.raises(StoreUsageError):
        Store(backend=object())  # type: ignore[arg-type]


def test_plugins_receive_the_constructed_store() -> None:
    seen: list[Store] = []
    store = Store({"plugins": [seen.append]})
    assert seen == [store]


def test_strict_from_config_and_options() -> None:
    assert Store(config=StoreConfig(strict=True)).strict is True
    assert Store({"strict": False}, config=StoreConfig(strict=True)).strict is False


# ------------------------------------------------------------------
# Commit
# ------------------------------------------------------------------


def test_commit_runs_handler_and_notifies_subscribers() -> None:
    store = Store(_counter())
    seen: list[tuple[Mutation, Any]] = []
    store.subscribe(lambda mutation, state: seen.append((mutation, dict(state))))

    store.commit("increment", 2)

    assert store.state["count"] == 3
    assert seen == [(Mutation(type="increment", payload=2), {"count": 3})]


def test_object_style_commit() -> None:
    store = Store(
        {
            "state": {"count": 0},
            "mutations": {"add": lambda state, payload: state.update(count=state["count"] + payload["amount"])},
        }
    )
    payloads: list[Any] = []
    store.subscribe(lambda mutation, _state: payloads.append(mutation.payload))

    store.commit({"type": "add", "amount": 4})
    store.commit(Mutation(type="add", payload={"amount": 1}))

    assert store.state["count"] == 5
    assert payloads == [{"type": "add", "amount": 4}, {"amount": 1}]


def test_committing_flag_is_scoped_and_restored() -> None:
    observed: list[bool] = []
    store: Store

    def inner(_state: Any) -> None:
        observed.append(store._committing)

    def outer(_state: Any) -> None:
        store.commit("inner")
        observed.append(store._committing)

    store = Store({"mutations": {"inner": inner, "outer": outer}})
    store.commit("outer")

    assert observed == [True, True]
    assert store._committing is False


def test_committing_flag_restored_after_handler_error() -> None:
    def broken(_state: Any) -> None:
        raise RuntimeError("boom")

    store = Store({"mutations": {"broken": broken}})
    with pytest.raises(RuntimeError):
        store.commit("broken")
    assert store._committing is False


def test_unknown_mutation_is_reported(caplog: pytest.LogCaptureFixture) -> None:
    store = Store(_counter())
    calls: list[Any] = []
    store.subscribe(lambda *args: calls.append(args))

    with caplog.at_level(logging.ERROR, logger=STORE_LOGGER):
        store.commit("nope")

    assert "unknown mutation type: nope" in _messages(caplog)
    assert calls == []
    assert store.state["count"] == 1


def test_non_string_type_is_fatal() -> None:
    store = Store(_counter())
    with pytest.raises(StoreUsageError):
        store.commit(None)


def test_silent_option_warns(caplog: pytest.LogCaptureFixture) -> None:
    store = Store(_counter())
    with caplog.at_level(logging.WARNING, logger=STORE_LOGGER):
        store.commit("increment", 1, CommitOptions(silent=True))
    assert store.state["count"] == 2
    assert any("silent option has no effect" in message for message in _messages(caplog))


def test_production_mode_is_silent(caplog: pytest.LogCaptureFixture) -> None:
    store = Store(_counter(), config=StoreConfig(production=True))
    with caplog.at_level(logging.DEBUG):
        store.commit("nope")
        store.commit("increment", 1, {"silent": True})
        store.state = {}
    assert caplog.records == []
    assert store.state["count"] == 2


# ------------------------------------------------------------------
# Subscriptions
# ------------------------------------------------------------------


def test_subscribe_is_deduplicated_and_unsubscribe_idempotent() -> None:
    store = Store(_counter())
    calls: list[str] = []

    def sub(mutation: Mutation, _state: Any) -> None:
        calls.append(mutation.type)

    unsubscribe = store.subscribe(sub)
    store.subscribe(sub)
    store.commit("increment")
    unsubscribe()
    unsubscribe()
    store.commit("increment")

    assert calls == ["increment"]


def test_unsubscribe_during_notification_keeps_other_subscribers() -> None:
    store = Store(_counter())
    calls: list[str] = []
    unsubscribe_first = store.subscribe(lambda *_: (calls.append("first"), unsubscribe_first()))
    store.subscribe(lambda *_: calls.append("second"))

    store.commit("increment")
    store.commit("increment")

    assert calls == ["first", "second", "second"]


def test_subscribe_action_accepts_mapping_and_record() -> None:
    store = Store()
    first = store.subscribe_action({"after": print})
    second = store.subscribe_action(ActionSubscriber(before=print))
    assert len(store._action_subscribers) == 2
    first()
    second()
    assert store._action_subscribers == []


# ------------------------------------------------------------------
# Getters
# ------------------------------------------------------------------


def test_getters_are_memoised_and_follow_state() -> None:
    calls: list[int] = []

    def done_todos(state: Any) -> list[Any]:
        calls.append(1)
        return [todo for todo in state["todos"] if todo["done"]]

    store = Store(
        {
            "state": {"todos": [{"id": 1, "done": True}, {"id": 2, "done": False}]},
            "getters": {
                "done_todos": done_todos,
                "done_count": lambda _state, getters: len(getters["done_todos"]),
            },
            "mutations": {"add": lambda state, todo: state["todos"].append(todo)},
        }
    )

    assert store.getters["done_count"] == 1
    assert store.getters.done_todos == [{"id": 1, "done": True}]
    assert len(calls) == 1

    store.commit("add", {"id": 3, "done": True})

    assert store.getters["done_count"] == 2
    assert len(calls) == 2
    assert "done_count" in store.getters
    assert "missing" not in store.getters
    with pytest.raises(KeyError):
        store.getters["missing"]


def test_getter_receives_root_state_and_root_getters() -> None:
    store = Store(
        {
            "state": {"factor": 10},
            "getters": {"factor": lambda state: state["factor"]},
            "modules": {
                "inner": {
                    "state": {"value": 2},
                    "getters": {
                        "scaled": lambda state, _getters, root_state, root_getters: (
                            state["value"] * root_state["factor"] + root_getters["factor"]
                        ),
                    },
                },
            },
        }
    )
    assert store.getters["scaled"] == 30


# ------------------------------------------------------------------
# Watch
# ------------------------------------------------------------------


def test_sync_watch() -> None:
    store = Store(_counter())
    seen: list[tuple[Any, Any]] = []

    unwatch = store.watch(lambda state: state["count"], lambda new, old: seen.append((new, old)), sync=True)
    store.commit("increment")
    unwatch()
    store.commit("increment")

    assert seen == [(2, 1)]


def test_watch_getter_through_getters_flushes_batched() -> None:
    backend = ReactiveBackend()
    store = Store(_counter(), backend=backend)
    seen: list[tuple[Any, Any]] = []

    store.watch(lambda _state, getters: getters["double"], lambda new, old: seen.append((new, old)))
    store.commit("increment")
    store.commit("increment")
    assert seen == []

    backend.flush()
    assert seen == [(6, 2)]


def test_watch_immediate() -> None:
    store = Store(_counter())
    seen: list[Any] = []
    store.watch(lambda state: state["count"], lambda new, old: seen.append((new, old)), immediate=True)
    assert seen == [(1, None)]


def test_watch_requires_a_function() -> None:
    store = Store(_counter())
    with pytest.raises(StoreUsageError):
        store.watch("count", print)  # type: ignore[arg-type]


# ------------------------------------------------------------------
# State replacement
# ------------------------------------------------------------------


def test_state_setter_is_ignored(caplog: pytest.LogCaptureFixture) -> None:
    store = Store(_counter())
    original = store.state

    with caplog.at_level(logging.ERROR, logger=STORE_LOGGER):
        store.state = {"count": 100}

    assert store.state is original
    assert "use store.replace_state() to explicitly replace store state." in _messages(caplog)


def test_replace_state_updates_getters_and_local_state() -> None:
    store = Store(
        _counter(
            modules={
                "cart": {
                    "namespaced": True,
                    "state": {"items": []},
                    "mutations": {"push": lambda state, item: state["items"].append(item)},
                }
            }
        )
    )
    assert store.getters["double"] == 2

    store.replace_state({"count": 5, "cart": {"items": ["a"]}})
    store.commit("cart/push", "b")

    assert store.getters["double"] == 10
    assert store.state["cart"]["items"] == ["a", "b"]


# ------------------------------------------------------------------
# Strict mode
# ------------------------------------------------------------------


def test_strict_mode_reports_writes_outside_mutations(caplog: pytest.LogCaptureFixture) -> None:
    store = Store(_counter(strict=True))
    violation = "do not mutate store state outside mutation handlers."

    with caplog.at_level(logging.ERROR, logger=STORE_LOGGER):
        store.commit("increment")
        assert store.state["count"] == 2
        assert violation not in _messages(caplog)

        store.state["count"] = 5

    assert _messages(caplog).count(violation) == 1
    assert store.state["count"] == 5


def test_strict_mode_off_by_default(caplog: pytest.LogCaptureFixture) -> None:
    store = Store(_counter())
    with caplog.at_level(logging.ERROR, logger=STORE_LOGGER):
        store.state["count"] = 5
    assert caplog.records == []


def test_strict_mode_allows_replace_state(caplog: pytest.LogCaptureFixture) -> None:
    store = Store(_counter(strict=True))
    with caplog.at_level(logging.ERROR, logger=STORE_LOGGER):
        store.replace_state({"count": 7})
        store.commit("increment")
    assert caplog.records == []
    assert store.state["count"] == 8
