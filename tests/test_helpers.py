from __future__ import annotations

import logging
from types import SimpleNamespace
from typing import Any

import pytest

from pystatetree import (
    ActionContext,
    Store,
    create_namespaced_helpers,
    inject_store,
    map_actions,
    map_getters,
    map_mutations,
    map_state,
)


def _store() -> Store:
    async def checkout(context: ActionContext, note: str) -> str:
        context.commit("set_status", note)
        return f"checked out {len(context.state['items'])}"

    return Store(
        {
            "state": {"user": "ann"},
            "getters": {"greeting": lambda state: f"hi {state['user']}"},
            "mutations": {"rename": lambda state, name: state.update(user=name)},
            "modules": {
                "cart": {
                    "namespaced": True,
                    "state": {"items": [], "status": None},
                    "getters": {"count": lambda state: len(state["items"])},
                    "mutations": {
                        "push": lambda state, item: state["items"].append(item),
                        "set_status": lambda state, status: state.update(status=status),
                    },
                    "actions": {"checkout": checkout},
                }
            },
        }
    )


def _component(store: Store) -> SimpleNamespace:
    component = SimpleNamespace()
    inject_store(component, store=store)
    return component


# ------------------------------------------------------------------
# inject_store
# ------------------------------------------------------------------


def test_inject_store_from_instance_factory_and_parent() -> None:
    store = _store()
    root = SimpleNamespace()
    child = SimpleNamespace()
    orphan = SimpleNamespace()

    assert inject_store(root, store=lambda: store) is store
    assert inject_store(child, parent=root) is store
    assert inject_store(orphan) is None

    assert root.store is store
    assert child.store is store
    assert not hasattr(orphan, "store")


# ------------------------------------------------------------------
# map_* helpers
# ------------------------------------------------------------------


def test_map_state_root_and_namespaced() -> None:
    store = _store()
    component = _component(store)
    store.commit("cart/push", "apple")

    root_state = map_state(["user"])
    cart_state = map_state("cart", {"items": "items", "first": lambda state: state["items"][0]})

    assert root_state["user"](component) == "ann"
    assert root_state["user"](store) == "ann"
    assert cart_state["items"](component) == ["apple"]
    assert cart_state["first"](component) == "apple"


def test_map_state_function_receives_local_getters() -> None:
    store = _store()
    store.commit("cart/push", "pear")

    mapped = map_state("cart/", {"summary": lambda state, getters: (state["status"], getters["count"])})

    assert mapped["summary"](store) == (None, 1)


def test_map_getters() -> None:
    store = _store()
    component = _component(store)

    root = map_getters({"hello": "greeting"})
    cart = map_getters("cart", ["count"])

    assert root["hello"](component) == "hi ann"
    assert cart["count"](component) == 0


def test_map_getters_unknown_is_reported(caplog: pytest.LogCaptureFixture) -> None:
    store = _store()

    with caplog.at_level(logging.ERROR, logger="pystatetree.helpers"):
        assert map_getters("cart", ["missing"])["missing"](store) is None

    assert "unknown getter: cart/missing" in [record.getMessage() for record in caplog.records]


def test_map_mutations() -> None:
    store = _store()
    component = _component(store)

    root = map_mutations(["rename"])
    cart = map_mutations("cart", {"add": "push", "add_upper": lambda commit, item: commit("push", item.upper())})

    root["rename"](component, "bob")
    cart["add"](component, "plum")
    cart["add_upper"](component, "fig")

    assert store.state["user"] == "bob"
    assert store.state["cart"]["items"] == ["plum", "FIG"]


@pytest.mark.asyncio
async def test_map_actions() -> None:
    store = _store()
    component = _component(store)
    store.commit("cart/push", "kiwi")

    actions = map_actions("cart", {"buy": "checkout"})

    assert await actions["buy"](component, "paid") == "checked out 1"
    assert store.state["cart"]["status"] == "paid"


def test_unknown_namespace_is_reported(caplog: pytest.LogCaptureFixture) -> None:
    store = _store()

    with caplog.at_level(logging.ERROR, logger="pystatetree.helpers"):
        assert map_state("ghost", ["x"])["x"](store) is None
        assert map_mutations("ghost", ["x"])["x"](store) is None

    messages = [record.getMessage() for record in caplog.records]
    assert "module namespace not found in map_state(): ghost/" in messages
    assert "module namespace not found in map_mutations(): ghost/" in messages


def test_names_are_required() -> None:
    with pytest.raises(TypeError):
        map_state("cart")


@pytest.mark.asyncio
async def test_create_namespaced_helpers() -> None:
    store = _store()
    component = _component(store)
    helpers = create_namespaced_helpers("cart")

    helpers.map_mutations(["push"])["push"](component, "lime")
    result: Any = await helpers.map_actions(["checkout"])["checkout"](component, "done")

    assert helpers.map_state(["items"])["items"](component) == ["lime"]
    assert helpers.map_getters(["count"])["count"](component) == 1
    assert result == "checked out 1"
