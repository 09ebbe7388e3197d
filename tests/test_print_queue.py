"""Tests for the print queue."""

import pytest

from custom_components.label_print_queue.errors import ValidationError
from custom_components.label_print_queue.print_queue import PrintQueue


def test_add_item_appends_and_merges():  # type: ignore[no-untyped-def]
    queue = PrintQueue()
    queue.add_item("stock", 2, {"product_name": "Stock"}, title="Stock")
    queue.add_item("soup", 1, {"product_name": "Soup"})
    queue.add_item("stock", 3)

    assert [entry.identity for entry in queue.entries] == ["stock", "soup"]
    assert queue.get("stock").quantity == 5
    # Merging keeps the original payload
    assert queue.get("stock").payload == {"product_name": "Stock"}
    assert queue.total_items == 2
    assert queue.total_labels == 6


def test_totals_always_reflect_entries():  # type: ignore[no-untyped-def]
    queue = PrintQueue()
    assert queue.total_items == 0
    assert queue.total_labels == 0

    queue.add_item("a", 4)
    queue.add_item("b", 1)
    queue.set_quantity("a", 2)
    assert (queue.total_items, queue.total_labels) == (2, 3)

    queue.remove_item("b")
    assert (queue.total_items, queue.total_labels) == (1, 2)

    queue.clear()
    assert (queue.total_items, queue.total_labels) == (0, 0)


@pytest.mark.parametrize("quantity", [0, -1, 1.5, "2", True])
def test_add_item_rejects_bad_quantity(quantity):  # type: ignore[no-untyped-def]
    queue = PrintQueue()
    with pytest.raises(ValidationError):
        queue.add_item("a", quantity)
    assert queue.total_items == 0


@pytest.mark.parametrize("identity", ["", "   ", None, 12, "a\x00b"])
def test_add_item_rejects_bad_identity(identity):  # type: ignore[no-untyped-def]
    with pytest.raises(ValidationError):
        PrintQueue().add_item(identity, 1)


def test_queue_size_limit():  # type: ignore[no-untyped-def]
    queue = PrintQueue(max_items=2)
    queue.add_item("a")
    queue.add_item("b")
    with pytest.raises(ValidationError, match="Maximum queue size"):
        queue.add_item("c")
    # Merging into an existing entry is still allowed when full
    queue.add_item("a")
    assert queue.get("a").quantity == 2


def test_quantity_limit_per_entry():  # type: ignore[no-untyped-def]
    queue = PrintQueue(max_quantity=5)
    queue.add_item("a", 4)
    with pytest.raises(ValidationError):
        queue.add_item("a", 2)
    assert queue.get("a").quantity == 4
    with pytest.raises(ValidationError):
        queue.add_item("b", 6)


def test_remove_absent_is_noop():  # type: ignore[no-untyped-def]
    queue = PrintQueue()
    calls = []
    queue.add_listener(lambda: calls.append(1))
    queue.remove_item("missing")
    assert calls == []


def test_set_quantity():  # type: ignore[no-untyped-def]
    queue = PrintQueue()
    queue.add_item("a", 2)

    queue.set_quantity("a", 7)
    assert queue.get("a").quantity == 7

    queue.set_quantity("a", 0)
    assert "a" not in queue

    # Zero on an absent identity is a removal of nothing
    queue.set_quantity("a", 0)

    with pytest.raises(ValidationError):
        queue.set_quantity("a", 3)
    with pytest.raises(ValidationError):
        queue.set_quantity("a", -1)


def test_auto_open_on_add():  # type: ignore[no-untyped-def]
    queue = PrintQueue()
    assert not queue.is_open
    queue.add_item("a")
    assert queue.is_open

    closed = PrintQueue(auto_open=False)
    closed.add_item("a")
    assert not closed.is_open


def test_open_close_toggle():  # type: ignore[no-untyped-def]
    queue = PrintQueue(auto_open=False)
    queue.open()
    assert queue.is_open
    queue.close()
    assert not queue.is_open
    queue.toggle()
    assert queue.is_open


def test_listeners_notified_on_changes():  # type: ignore[no-untyped-def]
    queue = PrintQueue()
    calls = []
    remove = queue.add_listener(lambda: calls.append(queue.total_labels))

    queue.add_item("a", 2)
    queue.set_quantity("a", 3)
    queue.set_quantity("a", 3)  # unchanged
    queue.clear()
    assert calls == [2, 3, 0]

    remove()
    queue.add_item("b")
    assert calls == [2, 3, 0]


def test_failing_listener_does_not_break_mutation():  # type: ignore[no-untyped-def]
    queue = PrintQueue()

    def _boom() -> None:
        raise RuntimeError("listener")

    queue.add_listener(_boom)
    queue.add_item("a")
    assert queue.total_items == 1


def test_as_dict():  # type: ignore[no-untyped-def]
    queue = PrintQueue()
    queue.add_item("a", 2, title="Soup")
    data = queue.as_dict()
    assert data["total_items"] == 1
    assert data["total_labels"] == 2
    assert data["open"] is True
    assert data["entries"][0]["identity"] == "a"
    assert data["entries"][0]["title"] == "Soup"
