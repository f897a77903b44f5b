#!/usr/bin/env python3
"""
Live-adjustable settings shown in the side panel.

The block keeps a selection cursor over a fixed list of parameters. Adjusting
the selected entry does not touch the simulation: it returns a SetParameter
command for the loop, which validates it like any other input.
"""
from dataclasses import dataclass
from typing import Callable, List, Sequence, Tuple

from .commands import SetParameter
from .data_models import SimulationParameters


@dataclass(frozen=True)
class Setting:
    label: str
    parameter: str
    increment: Callable[[float], float]
    decrement: Callable[[float], float]
    fmt: str = "{:g}"

    def text(self, params: SimulationParameters) -> str:
        return f"{self.label}\t{self.fmt.format(getattr(params, self.parameter))}"


DEFAULT_SETTINGS: Tuple[Setting, ...] = (
    Setting("Speed (dt):", "time_step", lambda v: round(v + 1, 6), lambda v: round(v - 1, 6)),
    Setting("Force (G):", "gravitational_constant", lambda v: v * 10.0, lambda v: v * 0.1),
    Setting("Drag:", "damping_factor", lambda v: round(v + 0.01, 2), lambda v: round(v - 0.01, 2), "{:.2f}"),
    Setting("Accel cap:", "max_acceleration_magnitude", lambda v: v * 2.0, lambda v: v * 0.5),
    Setting("Softening:", "softening_radius", lambda v: v * 2.0, lambda v: v * 0.5),
)


class SettingsBlock:
    def __init__(self, settings: Sequence[Setting] = DEFAULT_SETTINGS):
        if not settings:
            raise ValueError("settings block needs at least one entry")
        self.settings = tuple(settings)
        self.selected = 0

    @property
    def current(self) -> Setting:
        return self.settings[self.selected]

    def up(self) -> None:
        if self.selected != 0:
            self.selected -= 1

    def down(self) -> None:
        if self.selected < len(self.settings) - 1:
            self.selected += 1

    def increment(self, params: SimulationParameters) -> SetParameter:
        s = self.current
        return SetParameter(s.parameter, s.increment(getattr(params, s.parameter)))

    def decrement(self, params: SimulationParameters) -> SetParameter:
        s = self.current
        return SetParameter(s.parameter, s.decrement(getattr(params, s.parameter)))

    def lines(self, params: SimulationParameters) -> List[Tuple[str, bool]]:
        """(text, is_selected) rows for display."""
        return [(s.text(params), i == self.selected) for i, s in enumerate(self.settings)]
