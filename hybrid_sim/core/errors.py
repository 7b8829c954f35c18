"""Exception types for the hybrid network simulation.

Configuration problems are detected before any simulated time elapses and are
never recovered from. A callback failing while the scheduler runs is fatal for
the whole run.
"""


class SimulationError(Exception):
    """Base class for all simulation errors."""


class ConfigurationError(SimulationError):
    """Invalid parameters, detected before or during setup."""


class InvalidDelay(ConfigurationError):
    """An event was scheduled with a negative delay."""


class TopologyError(ConfigurationError):
    """The network topology could not be built."""


class SchedulerFatalError(SimulationError):
    """A scheduled callback raised while the scheduler was running.

    Attributes:
        time: Virtual time at which the failing event fired.
        sequence_id: Sequence id of the failing event.
        context: Execution context the event was tagged with.
    """

    def __init__(self, message: str, time: float, sequence_id: int, context=None):
        super().__init__(message)
        self.time = time
        self.sequence_id = sequence_id
        self.context = context
