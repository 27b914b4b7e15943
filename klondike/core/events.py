"""
Event system for the Klondike engine.

This module provides the publish/subscribe channel that decouples the game
logic from whatever draws the game. Commands and the controller publish
named events carrying pile snapshots; presentation layers subscribe, do
their work and acknowledge.

Choreographed events carry an ``Acknowledgement``. The publisher awaits it
before taking the next step, so a deal never places a card on tableau 2
before the placement on tableau 1 has settled. A listener settles an event
by returning (plain function), by finishing (coroutine function), or by
calling ``event.ack.hold()`` and later invoking the returned release
callable. With no listeners at all an event settles immediately.
"""

import asyncio
import inspect
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Set


class EventType(Enum):
    """Types of events that can be published by the engine."""

    # Game lifecycle events
    GAME_INITIALIZED = "game-initialized"
    DEALING = "dealing"
    DEALING_FINISHED = "dealing-finished"
    GAME_ENDED = "game-ended"
    FAST_FORWARD_POSSIBLE = "fast-forward-possible"

    # Choreographed pile mutations
    MOVE_CARDS = "move-cards"
    FLIP_TOP_N_CARDS = "flip-top-n-cards"

    # History and score
    HISTORY_UPDATE = "history-update"
    SCORE_UPDATED = "score-updated"
    STOCK_EXHAUSTED = "stock-exhausted"

    # Drag feedback
    DRAG_VALIDATED = "validated-drag-start-card"
    DRAG_REJECTED = "invalid-drag-start-card"
    VALID_DRAG_OVER_PILE = "valid-drag-over-pile"
    INVALID_DRAG_OVER_PILE = "invalid-drag-over-pile"
    INVALID_DROP_OVER_PILE = "invalid-drop-over-pile"
    REJECT_COLLECT_CARD = "reject-collect-card"

    # Persistence
    GAME_SAVE_DATA = "game-save-data"
    GAME_DATA_LOADED = "game-data-loaded"
    GAME_LOAD_FINISHED = "game-load-finished"


class Acknowledgement:
    """
    Completion signal for one published event.

    Starts settled. Every ``hold()`` adds one outstanding step and returns a
    callable that releases it; the acknowledgement is settled again once
    every hold has been released.
    """

    def __init__(self):
        self._pending = 0
        self._settled = asyncio.Event()
        self._settled.set()

    @property
    def is_settled(self) -> bool:
        return self._pending == 0

    def hold(self) -> Callable[[], None]:
        """Register an outstanding step.

        Returns:
            A release callable. Calling it more than once has no effect.
        """
        self._pending += 1
        self._settled.clear()
        released = False

        def release() -> None:
            nonlocal released
            if released:
                return
            released = True
            self._pending -= 1
            if self._pending == 0:
                self._settled.set()

        return release

    async def wait(self) -> None:
        """Suspend until every hold has been released."""
        if self._pending == 0:
            return
        await self._settled.wait()


@dataclass
class GameEvent:
    """Represents a published event with associated data.

    Attributes:
        event_type: The type of event
        data: Event-specific data
        timestamp: When the event occurred (optional)
        ack: Completion signal the publisher may await
    """

    event_type: EventType
    data: Dict[str, Any]
    timestamp: Optional[float] = None
    ack: Acknowledgement = field(default_factory=Acknowledgement, repr=False, compare=False)

    def __post_init__(self):
        """Set timestamp if not provided."""
        if self.timestamp is None:
            self.timestamp = time.time()

    def __getitem__(self, key: str) -> Any:
        return self.data[key]


# Type alias for event listeners
EventListener = Callable[[GameEvent], Any]


class EventBus:
    """Event bus for managing game events and listeners.

    One instance is created per game session and handed to every component
    that publishes or subscribes.
    """

    def __init__(self, logger: Optional[logging.Logger] = None, max_history: int = 1000):
        """Initialize the event bus.

        Args:
            logger: Optional logger for debugging events
            max_history: Number of events kept in the history
        """
        self._listeners: Dict[EventType, List[EventListener]] = {}
        self._logger = logger or logging.getLogger(__name__)
        self._event_history: List[GameEvent] = []
        self._max_history = max_history
        self._listener_tasks: Set["asyncio.Future"] = set()

    def subscribe(self, event_type: EventType, listener: EventListener) -> None:
        """Subscribe a listener to an event type.

        Args:
            event_type: The type of event to listen for
            listener: Callable invoked with the event. It may return an
                awaitable; ``publish`` then waits for it before settling.
        """
        self._listeners.setdefault(event_type, []).append(listener)
        self._logger.debug(f"Subscribed listener to {event_type.value}")

    def unsubscribe(self, event_type: EventType, listener: EventListener) -> bool:
        """Unsubscribe a listener from an event type.

        Returns:
            True if the listener was found and removed, False otherwise
        """
        if event_type not in self._listeners:
            return False

        try:
            self._listeners[event_type].remove(listener)
            self._logger.debug(f"Unsubscribed listener from {event_type.value}")
            return True
        except ValueError:
            return False

    def emit(self, event: GameEvent) -> None:
        """Deliver an event to all subscribed listeners without waiting.

        Awaitables returned by listeners are scheduled on the running loop
        and hold the event's acknowledgement until they finish. Outside a
        running loop they are closed and logged.
        """
        self._add_to_history(event)

        listeners = list(self._listeners.get(event.event_type, []))
        self._logger.debug(f"Emitting {event.event_type.value} to {len(listeners)} listeners")

        for listener in listeners:
            try:
                result = listener(event)
            except Exception as e:
                self._logger.error(f"Error in event listener for {event.event_type.value}: {e}")
                continue
            if inspect.isawaitable(result):
                self._track_awaitable(event, result)

    def emit_simple(self, event_type: EventType, **data) -> GameEvent:
        """Emit an event built from keyword arguments.

        Returns:
            The emitted event
        """
        event = GameEvent(event_type=event_type, data=data)
        self.emit(event)
        return event

    async def publish(self, event: GameEvent) -> GameEvent:
        """Deliver an event and wait until every listener has settled it.

        Returns:
            The settled event
        """
        self.emit(event)
        await event.ack.wait()
        return event

    async def publish_simple(self, event_type: EventType, **data) -> GameEvent:
        """Publish an event built from keyword arguments and wait for it.

        The event's acknowledgement is also exposed to listeners under the
        ``ack`` key of its data.
        """
        event = GameEvent(event_type=event_type, data=data)
        event.data['ack'] = event.ack
        return await self.publish(event)

    def _track_awaitable(self, event: GameEvent, awaitable: Any) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            if inspect.iscoroutine(awaitable):
                awaitable.close()
            self._logger.error(
                f"Async listener for {event.event_type.value} ignored: no running event loop"
            )
            return

        release = event.ack.hold()
        future = asyncio.ensure_future(awaitable, loop=loop)
        # the loop only keeps weak references to tasks
        self._listener_tasks.add(future)

        def on_done(task: "asyncio.Future") -> None:
            if not task.cancelled() and task.exception() is not None:
                self._logger.error(
                    f"Error in async event listener for {event.event_type.value}: {task.exception()}"
                )
            self._listener_tasks.discard(task)
            release()

        future.add_done_callback(on_done)

    @property
    def pending_listener_tasks(self) -> int:
        """Number of async listeners still running."""
        return len(self._listener_tasks)

    def get_listeners_count(self, event_type: EventType) -> int:
        """Get the number of listeners for an event type."""
        return len(self._listeners.get(event_type, []))

    def clear_listeners(self, event_type: Optional[EventType] = None) -> None:
        """Clear listeners for a specific event type or all event types."""
        if event_type is None:
            self._listeners.clear()
            self._logger.debug("Cleared all event listeners")
        else:
            self._listeners[event_type] = []
            self._logger.debug(f"Cleared listeners for {event_type.value}")

    def _add_to_history(self, event: GameEvent) -> None:
        self._event_history.append(event)
        if len(self._event_history) > self._max_history:
            self._event_history.pop(0)

    def get_event_history(self, event_type: Optional[EventType] = None,
                          limit: Optional[int] = None) -> List[GameEvent]:
        """Get event history, optionally filtered by type and limited.

        Args:
            event_type: Optional event type to filter by
            limit: Optional limit on number of events to return

        Returns:
            List of events from history, oldest first
        """
        events = self._event_history

        if event_type is not None:
            events = [e for e in events if e.event_type == event_type]

        if limit is not None:
            events = events[-limit:]

        return list(events)

    def clear_history(self) -> None:
        """Clear the event history."""
        self._event_history.clear()
        self._logger.debug("Cleared event history")
