"""Tests for the queue badge pulse."""

from datetime import timedelta
from functools import partial

from homeassistant.helpers.event import async_call_later
from homeassistant.util import dt as dt_util
from pytest_homeassistant_custom_component.common import async_fire_time_changed

from custom_components.label_print_queue.badge import QueueBadge
from custom_components.label_print_queue.print_queue import PrintQueue


class FakeTimers:
    """Records scheduled callbacks instead of running them."""

    def __init__(self) -> None:
        self.pending: list[list] = []

    def call_later(self, delay, action):  # type: ignore[no-untyped-def]
        timer = [delay, action, False]
        self.pending.append(timer)

        def _cancel() -> None:
            timer[2] = True

        return _cancel

    def fire_all(self) -> None:
        for delay, action, cancelled in list(self.pending):
            if not cancelled:
                action(None)
        self.pending.clear()

    @property
    def active(self) -> int:
        return sum(1 for *_, cancelled in self.pending if not cancelled)


def test_hidden_when_empty():  # type: ignore[no-untyped-def]
    queue = PrintQueue()
    badge = QueueBadge(queue, FakeTimers().call_later)
    assert not badge.visible
    assert not badge.pulsing
    assert badge.count == 0

    queue.add_item("a", 3)
    assert badge.visible
    assert badge.count == 3


def test_pulse_on_increase_then_settles():  # type: ignore[no-untyped-def]
    timers = FakeTimers()
    queue = PrintQueue()
    badge = QueueBadge(queue, timers.call_later)

    queue.add_item("a")
    assert badge.pulsing
    assert timers.pending[0][0] == 1.0

    timers.fire_all()
    assert not badge.pulsing


def test_only_item_increase_pulses():  # type: ignore[no-untyped-def]
    timers = FakeTimers()
    queue = PrintQueue()
    badge = QueueBadge(queue, timers.call_later)
    queue.add_item("a")
    timers.fire_all()

    # More copies of the same entry do not change the item count
    queue.add_item("a", 2)
    queue.set_quantity("a", 1)
    assert not badge.pulsing
    assert timers.active == 0

    queue.add_item("b")
    assert badge.pulsing


def test_repeated_increase_restarts_timer():  # type: ignore[no-untyped-def]
    timers = FakeTimers()
    queue = PrintQueue()
    badge = QueueBadge(queue, timers.call_later)

    queue.add_item("a")
    queue.add_item("b")
    assert len(timers.pending) == 2
    assert timers.pending[0][2] is True
    assert timers.active == 1
    assert badge.pulsing


def test_emptying_queue_stops_pulse():  # type: ignore[no-untyped-def]
    timers = FakeTimers()
    queue = PrintQueue()
    badge = QueueBadge(queue, timers.call_later)

    queue.add_item("a")
    queue.clear()
    assert not badge.pulsing
    assert not badge.visible
    assert timers.active == 0


def test_shutdown_cancels_timer_and_unsubscribes():  # type: ignore[no-untyped-def]
    timers = FakeTimers()
    queue = PrintQueue()
    badge = QueueBadge(queue, timers.call_later)
    queue.add_item("a")

    badge.shutdown()
    assert timers.active == 0

    queue.add_item("b")
    assert timers.active == 0
    assert not badge.pulsing


async def test_press_opens_queue():  # type: ignore[no-untyped-def]
    queue = PrintQueue(auto_open=False)
    badge = QueueBadge(queue, FakeTimers().call_later)
    queue.add_item("a")
    assert not queue.is_open

    await badge.async_press()
    assert queue.is_open


def test_listeners_see_pulse_changes():  # type: ignore[no-untyped-def]
    timers = FakeTimers()
    queue = PrintQueue()
    badge = QueueBadge(queue, timers.call_later)
    seen = []
    badge.add_listener(lambda: seen.append(badge.pulsing))

    queue.add_item("a")
    timers.fire_all()
    assert seen == [True, False]


async def test_pulse_with_home_assistant_timer(hass):  # type: ignore[no-untyped-def]
    queue = PrintQueue()
    badge = QueueBadge(queue, partial(async_call_later, hass))

    queue.add_item("a")
    assert badge.pulsing

    async_fire_time_changed(hass, dt_util.utcnow() + timedelta(seconds=2))
    await hass.async_block_till_done()
    assert not badge.pulsing
    badge.shutdown()
