"""
Event system unit tests.

Subscription, emission, history, and the acknowledgement handshake used by
choreographed events.
"""

import asyncio
import gc
from unittest.mock import Mock

import pytest

from klondike.core.events import Acknowledgement, EventBus, EventType, GameEvent

from tests.helpers import run


@pytest.mark.unit
@pytest.mark.fast
class TestEventBus:
    """Event bus tests."""

    def setup_method(self):
        self.event_bus = EventBus()
        self.mock_listener = Mock(return_value=None)

    def test_subscribe_and_emit(self):
        self.event_bus.subscribe(EventType.DEALING, self.mock_listener)

        event = GameEvent(event_type=EventType.DEALING, data={'deck': None})
        self.event_bus.emit(event)

        self.mock_listener.assert_called_once_with(event)

    def test_emit_simple(self):
        self.event_bus.subscribe(EventType.STOCK_EXHAUSTED, self.mock_listener)

        returned = self.event_bus.emit_simple(EventType.STOCK_EXHAUSTED, passes=3, pass_limit=3)

        called_event = self.mock_listener.call_args[0][0]
        assert called_event is returned
        assert called_event['passes'] == 3
        assert called_event.data['pass_limit'] == 3
        assert called_event.timestamp is not None

    def test_listeners_only_receive_their_type(self):
        self.event_bus.subscribe(EventType.GAME_ENDED, self.mock_listener)
        self.event_bus.emit_simple(EventType.DEALING)
        self.mock_listener.assert_not_called()

    def test_unsubscribe(self):
        self.event_bus.subscribe(EventType.DEALING, self.mock_listener)
        assert self.event_bus.unsubscribe(EventType.DEALING, self.mock_listener) is True
        assert self.event_bus.unsubscribe(EventType.DEALING, self.mock_listener) is False
        assert self.event_bus.unsubscribe(EventType.GAME_ENDED, self.mock_listener) is False

        self.event_bus.emit_simple(EventType.DEALING)
        self.mock_listener.assert_not_called()

    def test_failing_listener_does_not_stop_others(self):
        failing = Mock(side_effect=RuntimeError("boom"))
        self.event_bus.subscribe(EventType.DEALING, failing)
        self.event_bus.subscribe(EventType.DEALING, self.mock_listener)

        self.event_bus.emit_simple(EventType.DEALING)

        failing.assert_called_once()
        self.mock_listener.assert_called_once()

    def test_listener_counts_and_clear(self):
        self.event_bus.subscribe(EventType.DEALING, self.mock_listener)
        self.event_bus.subscribe(EventType.GAME_ENDED, self.mock_listener)
        assert self.event_bus.get_listeners_count(EventType.DEALING) == 1

        self.event_bus.clear_listeners(EventType.DEALING)
        assert self.event_bus.get_listeners_count(EventType.DEALING) == 0
        assert self.event_bus.get_listeners_count(EventType.GAME_ENDED) == 1

        self.event_bus.clear_listeners()
        assert self.event_bus.get_listeners_count(EventType.GAME_ENDED) == 0

    def test_history_filter_and_limit(self):
        self.event_bus.emit_simple(EventType.DEALING)
        self.event_bus.emit_simple(EventType.HISTORY_UPDATE, history_depth=1, redo_depth=0)
        self.event_bus.emit_simple(EventType.HISTORY_UPDATE, history_depth=2, redo_depth=0)

        assert len(self.event_bus.get_event_history()) == 3
        updates = self.event_bus.get_event_history(EventType.HISTORY_UPDATE)
        assert [e['history_depth'] for e in updates] == [1, 2]
        assert self.event_bus.get_event_history(limit=1)[0]['history_depth'] == 2

        self.event_bus.clear_history()
        assert self.event_bus.get_event_history() == []

    def test_history_is_bounded(self):
        bus = EventBus(max_history=2)
        for _ in range(5):
            bus.emit_simple(EventType.DEALING)
        assert len(bus.get_event_history()) == 2

    def test_async_listener_without_loop_is_ignored(self):
        async def listener(event):
            return None

        self.event_bus.subscribe(EventType.DEALING, listener)
        event = self.event_bus.emit_simple(EventType.DEALING)
        assert event.ack.is_settled


@pytest.mark.unit
@pytest.mark.fast
class TestAcknowledgement:
    """Publish/acknowledge handshake."""

    def test_starts_settled(self):
        ack = Acknowledgement()
        assert ack.is_settled
        run(ack.wait())

    def test_release_is_idempotent(self):
        ack = Acknowledgement()
        first = ack.hold()
        second = ack.hold()
        first()
        first()
        assert not ack.is_settled
        second()
        assert ack.is_settled

    def test_publish_without_listeners_settles_immediately(self):
        bus = EventBus()
        event = run(bus.publish_simple(EventType.MOVE_CARDS, n=1))
        assert event.ack.is_settled
        assert event['ack'] is event.ack

    def test_publish_waits_for_held_acknowledgement(self):
        bus = EventBus()
        order = []

        def listener(event):
            release = event.ack.hold()

            def finish():
                order.append("released")
                release()

            asyncio.get_running_loop().call_soon(finish)

        bus.subscribe(EventType.MOVE_CARDS, listener)

        async def scenario():
            await bus.publish_simple(EventType.MOVE_CARDS)
            order.append("published")

        run(scenario())
        assert order == ["released", "published"]

    def test_publish_waits_for_async_listener(self):
        bus = EventBus()
        order = []

        async def listener(event):
            await asyncio.sleep(0)
            order.append("animated")

        bus.subscribe(EventType.FLIP_TOP_N_CARDS, listener)

        async def scenario():
            await bus.publish_simple(EventType.FLIP_TOP_N_CARDS, n=1)
            order.append("published")

        run(scenario())
        assert order == ["animated", "published"]

    def test_failing_async_listener_still_settles(self):
        bus = EventBus()

        async def listener(event):
            raise RuntimeError("animation failed")

        bus.subscribe(EventType.MOVE_CARDS, listener)
        event = run(bus.publish_simple(EventType.MOVE_CARDS))
        assert event.ack.is_settled

    def test_emitted_async_listener_is_kept_until_done(self):
        bus = EventBus()
        seen = []

        async def listener(event):
            await asyncio.sleep(0)
            gc.collect()
            await asyncio.sleep(0)
            seen.append(event['history_depth'])

        bus.subscribe(EventType.HISTORY_UPDATE, listener)

        async def scenario():
            bus.emit_simple(EventType.HISTORY_UPDATE, history_depth=2, redo_depth=0)
            running = bus.pending_listener_tasks
            gc.collect()
            for _ in range(5):
                await asyncio.sleep(0)
            return running

        assert run(scenario()) == 1
        assert seen == [2]
        assert bus.pending_listener_tasks == 0
