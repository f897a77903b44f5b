#!/usr/bin/env python3
"""
Commands submitted by the input layer to the simulation loop.

Commands are small frozen values. They are queued in submission order and
applied by the loop thread between steps, never in the middle of one.
"""
from dataclasses import dataclass
from typing import Any, Optional

from .vector_utils import Vector


@dataclass(frozen=True)
class Command:
    """Base class for all commands."""


@dataclass(frozen=True)
class Pause(Command):
    pass


@dataclass(frozen=True)
class Resume(Command):
    pass


@dataclass(frozen=True)
class TogglePause(Command):
    pass


@dataclass(frozen=True)
class StepOnce(Command):
    """Advance exactly one step while paused."""


@dataclass(frozen=True)
class AddBody(Command):
    position: Vector
    velocity: Vector
    mass: float
    name: Optional[str] = None


@dataclass(frozen=True)
class RemoveBody(Command):
    body_id: int


@dataclass(frozen=True)
class EditBody(Command):
    """Overwrite some of a body's state; None leaves a field unchanged."""
    body_id: int
    position: Optional[Vector] = None
    velocity: Optional[Vector] = None
    mass: Optional[float] = None


@dataclass(frozen=True)
class SetParameter(Command):
    name: str
    value: Any


@dataclass(frozen=True)
class Reset(Command):
    """Restore the initial scene and clear any fault."""


@dataclass(frozen=True)
class Quit(Command):
    pass
