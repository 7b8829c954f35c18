"""Enumerations for network simulation.

This module defines enumerations used throughout the network simulator.
"""

from enum import Enum


class EventState(Enum):
    """Lifecycle of a scheduled event.

    Attributes:
        PENDING: Waiting in the event queue.
        FIRED: Dequeued and its callback invoked.
        CANCELLED: Cancelled or discarded before it could fire.
    """

    PENDING = 1
    FIRED = 2
    CANCELLED = 3


class GeneratorState(Enum):
    """States of a traffic generator.

    Attributes:
        SENDING: Packets remain to be sent (possibly zero, pending the final check).
        CLOSED: The socket was closed and the chain has ended.
    """

    SENDING = 1
    CLOSED = 2


class MediumKind(Enum):
    """Kind of transmission medium a device is attached to.

    Attributes:
        WIRELESS: Shared ad hoc wireless channel.
        WIRED: Shared CSMA wire.
    """

    WIRELESS = 1
    WIRED = 2
