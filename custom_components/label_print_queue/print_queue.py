"""In-memory queue of label requests awaiting a print action.

The queue lives for the lifetime of its config entry and is only mutated
from the event loop, so it carries no locking of its own.
"""

from __future__ import annotations

from collections.abc import Callable
import logging
from typing import Any

from .const import MAX_QUANTITY_PER_ITEM, MAX_QUEUE_SIZE
from .errors import ValidationError
from .models import QueueEntry
from .validation import validate_identity, validate_quantity

_LOGGER = logging.getLogger(__name__)


class PrintQueue:
    def __init__(
        self,
        *,
        max_items: int = MAX_QUEUE_SIZE,
        max_quantity: int = MAX_QUANTITY_PER_ITEM,
        auto_open: bool = True,
    ) -> None:
        self._entries: dict[str, QueueEntry] = {}
        self._max_items = max_items
        self._max_quantity = max_quantity
        self._auto_open = auto_open
        self._is_open = False
        self._listeners: list[Callable[[], None]] = []

    # Aggregates
    @property
    def total_items(self) -> int:
        return len(self._entries)

    @property
    def total_labels(self) -> int:
        return sum(entry.quantity for entry in self._entries.values())

    @property
    def entries(self) -> tuple[QueueEntry, ...]:
        # dicts keep insertion order, which is the display order
        return tuple(self._entries.values())

    @property
    def is_open(self) -> bool:
        return self._is_open

    @property
    def auto_open(self) -> bool:
        return self._auto_open

    @auto_open.setter
    def auto_open(self, value: bool) -> None:
        self._auto_open = bool(value)

    def get(self, identity: str) -> QueueEntry | None:
        return self._entries.get(identity)

    def __contains__(self, identity: object) -> bool:
        return identity in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    # Mutations
    def add_item(
        self,
        identity: str,
        quantity: int = 1,
        payload: Any = None,
        *,
        title: str | None = None,
    ) -> QueueEntry:
        """Add `quantity` labels for `identity`, merging with an existing entry."""
        identity = validate_identity(identity)
        quantity = validate_quantity(quantity)

        existing = self._entries.get(identity)
        if existing is not None:
            new_quantity = existing.quantity + quantity
            if new_quantity > self._max_quantity:
                raise ValidationError(
                    f"Quantity for '{identity}' would be {new_quantity}; maximum per item is {self._max_quantity}"
                )
            existing.quantity = new_quantity
            _LOGGER.debug("Queue: %s quantity now %s", identity, new_quantity)
            self._notify()
            return existing

        if len(self._entries) >= self._max_items:
            raise ValidationError(
                f"Maximum queue size is {self._max_items} items. Print or remove items first"
            )
        validate_quantity(quantity, maximum=self._max_quantity)

        entry = QueueEntry(
            identity=identity,
            payload=payload if payload is not None else {},
            quantity=quantity,
            title=title,
        )
        self._entries[identity] = entry
        _LOGGER.debug("Queue: added %s x%s (%s items)", identity, quantity, len(self._entries))

        if self._auto_open and not self._is_open:
            self._is_open = True
        self._notify()
        return entry

    def remove_item(self, identity: str) -> None:
        if self._entries.pop(identity, None) is None:
            return
        _LOGGER.debug("Queue: removed %s", identity)
        self._notify()

    def set_quantity(self, identity: str, quantity: int) -> None:
        """Set an exact quantity; zero removes the entry."""
        quantity = validate_quantity(quantity, minimum=0, maximum=self._max_quantity)
        if quantity == 0:
            self.remove_item(identity)
            return

        entry = self._entries.get(identity)
        if entry is None:
            raise ValidationError(f"'{identity}' is not in the print queue")
        if entry.quantity == quantity:
            return
        entry.quantity = quantity
        _LOGGER.debug("Queue: %s quantity set to %s", identity, quantity)
        self._notify()

    def clear(self) -> None:
        count = len(self._entries)
        if not count:
            return
        self._entries.clear()
        _LOGGER.debug("Queue: cleared %s items", count)
        self._notify()

    # Visibility
    def open(self) -> None:
        if self._is_open:
            return
        self._is_open = True
        self._notify()

    def close(self) -> None:
        if not self._is_open:
            return
        self._is_open = False
        self._notify()

    def toggle(self) -> None:
        if self._is_open:
            self.close()
        else:
            self.open()

    # Listeners
    def add_listener(self, callback: Callable[[], None]) -> Callable[[], None]:
        self._listeners.append(callback)

        def _remove() -> None:
            try:
                self._listeners.remove(callback)
            except ValueError:
                pass

        return _remove

    def _notify(self) -> None:
        for cb in list(self._listeners):
            try:
                cb()
            except Exception:
                _LOGGER.exception("Print queue listener failed")

    def as_dict(self) -> dict[str, Any]:
        return {
            "total_items": self.total_items,
            "total_labels": self.total_labels,
            "open": self._is_open,
            "entries": [entry.as_dict() for entry in self._entries.values()],
        }
