#!/usr/bin/env python3
"""
Exception types raised by the simulation engine.

User-input errors (bad parameter, bad body, unknown id) are recoverable: the
command is rejected and the previous state stays in force. An
InternalInvariantViolation means the engine itself produced bad numbers and
the simulation stream must stop.
"""


class SimulationError(Exception):
    """Base class for all engine errors."""


class InvalidParameterError(SimulationError, ValueError):
    """A simulation parameter value outside its domain, or an unknown name."""


class InvalidBodyError(SimulationError, ValueError):
    """A body with non-positive mass or malformed vectors."""


class UnknownBodyIdError(SimulationError, KeyError):
    """A command referenced a body id that is not in the simulation."""

    def __str__(self):
        # KeyError quotes its argument; keep the plain message.
        return Exception.__str__(self)


class InternalInvariantViolation(SimulationError):
    """Non-finite state detected after a step. Fatal to the simulation stream."""


class DegenerateVectorError(SimulationError, ArithmeticError):
    """Direction requested for a zero-length vector."""


class ConfigError(SimulationError):
    """A scene template could not be read or parsed."""
