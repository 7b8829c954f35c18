"""Virtual-time event scheduler.

This module defines the Scheduler class, which drives the simulation from a
single ordered event queue. The queue itself is a SimPy environment: every
scheduled callback is attached to a SimPy timeout, and SimPy keeps its heap
ordered by (time, priority, insertion id). All callbacks use the same priority,
so events sharing a fire time run in the order they were scheduled.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, Tuple

import simpy

from hybrid_sim.core.enums import EventState
from hybrid_sim.core.errors import InvalidDelay, SchedulerFatalError

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class EventHandle:
    """Handle to a scheduled event.

    Attributes:
        sequence_id: Enqueue order, unique for the lifetime of the scheduler.
        fire_time: Virtual time at which the event fires.
        callback: Callable invoked when the event fires.
        args: Positional arguments passed to the callback.
        context: Execution context tag (usually a node id), used for logging.
        state: Current lifecycle state of the event.
    """

    sequence_id: int
    fire_time: float
    callback: Callable[..., Any]
    args: Tuple[Any, ...] = ()
    context: Optional[int] = None
    state: EventState = field(default=EventState.PENDING)

    @property
    def is_pending(self) -> bool:
        return self.state is EventState.PENDING

    def __lt__(self, other: "EventHandle") -> bool:
        return (self.fire_time, self.sequence_id) < (other.fire_time, other.sequence_id)


class Scheduler:
    """Discrete-event scheduler with a virtual clock.

    Callbacks run strictly one at a time. A callback may schedule further
    events, which is how periodic behaviour is expressed.

    Attributes:
        env: SimPy environment holding the event queue.
        context: Context of the event currently executing, or None.
        events_processed: Number of callbacks invoked since creation.
    """

    def __init__(self) -> None:
        self.env = simpy.Environment()
        self.context: Optional[int] = None
        self.events_processed = 0
        self._next_sequence_id = 0
        self._pending: Dict[int, EventHandle] = {}

    @property
    def now(self) -> float:
        """Current virtual time in seconds."""
        return self.env.now

    @property
    def pending_count(self) -> int:
        """Number of events scheduled and neither fired nor cancelled."""
        return len(self._pending)

    def schedule(self, delay: float, callback: Callable[..., Any], *args: Any) -> EventHandle:
        """Schedule a callback to fire after a delay.

        The new event inherits the context of the event currently executing.

        Args:
            delay: Delay in seconds relative to the current virtual time.
            callback: Callable to invoke.
            *args: Arguments for the callback.

        Returns:
            Handle that can be passed to cancel().

        Raises:
            InvalidDelay: If the delay is negative.
        """
        return self.schedule_with_context(self.context, delay, callback, *args)

    def schedule_now(self, callback: Callable[..., Any], *args: Any) -> EventHandle:
        """Schedule a callback at the current virtual time."""
        return self.schedule(0.0, callback, *args)

    def schedule_with_context(
        self,
        context: Optional[int],
        delay: float,
        callback: Callable[..., Any],
        *args: Any,
    ) -> EventHandle:
        """Schedule a callback tagged with an execution context.

        The context is only used for attribution; it does not affect ordering.

        Args:
            context: Context identifier, usually the id of the node the event
                belongs to.
            delay: Delay in seconds relative to the current virtual time.
            callback: Callable to invoke.
            *args: Arguments for the callback.

        Returns:
            Handle that can be passed to cancel().

        Raises:
            InvalidDelay: If the delay is negative or not a number.
        """
        if math.isnan(delay) or delay < 0:
            raise InvalidDelay(f"Cannot schedule an event with delay {delay!r}")

        timeout = self.env.timeout(delay)
        handle = EventHandle(
            sequence_id=self._next_sequence_id,
            fire_time=self.env.now + delay,
            callback=callback,
            args=args,
            context=context,
        )
        self._next_sequence_id += 1
        self._pending[handle.sequence_id] = handle
        timeout.callbacks.append(lambda _event: self._dispatch(handle))
        return handle

    def cancel(self, handle: EventHandle) -> None:
        """Cancel a pending event.

        Cancelling an event that already fired or was already cancelled does
        nothing.
        """
        if not handle.is_pending:
            return
        handle.state = EventState.CANCELLED
        self._pending.pop(handle.sequence_id, None)

    def is_pending(self, handle: EventHandle) -> bool:
        return handle.is_pending and handle.sequence_id in self._pending

    def next_event_time(self) -> Optional[float]:
        """Fire time of the next pending event, or None if nothing is pending.

        Cancelled events still sitting in the SimPy queue are not counted.
        """
        if not self._pending:
            return None
        return min(self._pending.values()).fire_time

    def run(self, stop_time: Optional[float] = None) -> int:
        """Process events in virtual-time order.

        Stops when no event is pending or the next pending event fires after
        stop_time. Events firing exactly at stop_time are processed. The clock
        is left at the last event that fired; cancelled events never move it.

        Periodic events such as the OLSR refresh reschedule themselves, so
        once a topology is built only a stop_time ends the run.

        Args:
            stop_time: Virtual time limit in seconds, or None to run until
                nothing is pending.

        Returns:
            Number of callbacks invoked during this call.

        Raises:
            SchedulerFatalError: If a callback raises. The run is aborted.
        """
        processed_before = self.events_processed
        while True:
            next_time = self.next_event_time()
            if next_time is None:
                break
            if stop_time is not None and next_time > stop_time:
                break
            # cancelled timeouts ahead of next_time are popped on the way
            self.env.step()

        processed = self.events_processed - processed_before
        logger.debug(
            "Run halted at t=%.6fs after %d events (%d pending)",
            self.now,
            processed,
            self.pending_count,
        )
        return processed

    def destroy(self) -> None:
        """Discard all pending events without invoking them.

        The clock returns to zero. Sequence ids keep increasing.
        """
        discarded = len(self._pending)
        for handle in self._pending.values():
            handle.state = EventState.CANCELLED
        self._pending.clear()
        self.env = simpy.Environment()
        self.context = None
        logger.debug("Scheduler destroyed, %d pending events discarded", discarded)

    def _dispatch(self, handle: EventHandle) -> None:
        """Invoke the callback of an event that reached the head of the queue."""
        if not handle.is_pending:
            return

        handle.state = EventState.FIRED
        del self._pending[handle.sequence_id]
        self.events_processed += 1

        previous_context, self.context = self.context, handle.context
        logger.debug(
            "t=%.6fs seq=%d context=%s %s",
            self.now,
            handle.sequence_id,
            handle.context,
            getattr(handle.callback, "__qualname__", handle.callback),
        )
        try:
            handle.callback(*handle.args)
        except SchedulerFatalError:
            raise
        except Exception as exc:
            raise SchedulerFatalError(
                f"Event {handle.sequence_id} at t={self.now}s failed: {exc}",
                time=self.now,
                sequence_id=handle.sequence_id,
                context=handle.context,
            ) from exc
        finally:
            self.context = previous_context
