#!/usr/bin/env python3
"""
Character-grid rendering of a Snapshot.

Everything here is a pure function of its inputs: the same Snapshot and camera
always produce the same Frame, and nothing is written back into the snapshot.
The display layer only has to paint the cells and panel lines it is given.

Layout
- grid: the simulation canvas, trails as "·", bodies as "☼", coloured by id
- panel: title, entity info, settings, recent log lines, status line
"""
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple

from .camera import GridCamera
from .constants import BODY_COLORS, BODY_GLYPH, LOG_LINES_SHOWN, TRAIL_GLYPH
from .data_models import BodyState, Snapshot
from .loop import LogEntry
from .physics import centre_of_mass, kinetic_energy, total_momentum, unbound_bodies
from .settings import SettingsBlock

# (character, colour index or None for the default text colour)
Cell = Tuple[str, Optional[int]]
EMPTY_CELL: Cell = (" ", None)

HELP_LINE = " Quit <Q>  Reset <R>  Pause <Space>  Step <S>  Add <A>  Remove <X> "


@dataclass(frozen=True)
class CharGrid:
    columns: int
    rows: int
    cells: Tuple[Tuple[Cell, ...], ...]

    def lines(self) -> List[str]:
        return ["".join(ch for ch, _ in row) for row in self.cells]

    def at(self, col: int, row: int) -> Cell:
        return self.cells[row][col]


@dataclass(frozen=True)
class PanelLine:
    text: str
    style: str = "normal"  # normal | title | selected | warning | error
    color_index: Optional[int] = None


@dataclass(frozen=True)
class Frame:
    grid: CharGrid
    panel: Tuple[PanelLine, ...]
    status: str

    def text(self) -> str:
        """Plain-text dump of the frame (grid, then panel)."""
        return "\n".join(self.grid.lines() + [p.text for p in self.panel] + [self.status])


def color_index(body_id: int) -> int:
    return body_id % len(BODY_COLORS)


def render_grid(snapshot: Snapshot, camera: GridCamera) -> CharGrid:
    """Rasterize trails first, then bodies on top, in snapshot order."""
    cells = [[EMPTY_CELL] * camera.columns for _ in range(camera.rows)]
    for body in snapshot.bodies:
        for point in body.trail:
            cell = camera.world_to_cell(point)
            if cell is not None:
                col, row = cell
                cells[row][col] = (TRAIL_GLYPH, color_index(body.id))
    for body in snapshot.bodies:
        cell = camera.world_to_cell(body.position)
        if cell is not None:
            col, row = cell
            cells[row][col] = (BODY_GLYPH, color_index(body.id))
    return CharGrid(camera.columns, camera.rows, tuple(tuple(r) for r in cells))


def format_vector(v: Sequence[float]) -> str:
    return "(" + ", ".join(f"{x:.2f}" for x in v) + ")"


def entity_line(body: BodyState) -> PanelLine:
    text = f"{BODY_GLYPH} {body.mass:.0f}kg pos: {format_vector(body.position)} vel: {format_vector(body.velocity)}"
    return PanelLine(text, color_index=color_index(body.id))


def body_label(body: BodyState) -> str:
    return f"{body.id}: {body.name}"


def body_id_from_label(label: str) -> Optional[int]:
    """Inverse of body_label; None for an empty or malformed selection."""
    head, sep, _ = (label or "").partition(":")
    if not sep:
        return None
    try:
        return int(head)
    except ValueError:
        return None


def status_line(snapshot: Snapshot, fps: Optional[float] = None, tick_rate: Optional[float] = None) -> str:
    if snapshot.fault is not None:
        state = "FAULT"
    elif snapshot.running:
        state = "Running"
    else:
        state = "Paused"
    text = f"t={snapshot.time:.1f} steps={snapshot.step_count} bodies={len(snapshot.bodies)} [{state}]"
    if fps is not None:
        text += f" {fps:.0f}fps"
    if tick_rate is not None:
        text += f" {tick_rate:.0f}ticks/s"
    return text


def diagnostics_line(snapshot: Snapshot) -> PanelLine:
    """Kinetic energy, total momentum, centre of mass and unbound body count."""
    bodies = snapshot.bodies
    if not bodies:
        return PanelLine("E_k=0 p=() com=() unbound=0")
    unbound = len(unbound_bodies(bodies, snapshot.parameters.gravitational_constant))
    text = (f"E_k={kinetic_energy(bodies):.3g} p={format_vector(total_momentum(bodies))} "
            f"com={format_vector(centre_of_mass(bodies))} unbound={unbound}")
    return PanelLine(text, "warning" if unbound else "normal")


def compose_frame(snapshot: Snapshot, camera: GridCamera, settings: Optional[SettingsBlock] = None,
                  log_entries: Iterable[LogEntry] = (), fps: Optional[float] = None,
                  tick_rate: Optional[float] = None) -> Frame:
    panel: List[PanelLine] = [PanelLine(" Entity Info ", "title")]
    panel.extend(entity_line(b) for b in snapshot.bodies)
    panel.append(diagnostics_line(snapshot))

    if settings is not None:
        panel.append(PanelLine(" Simulation Settings ", "title"))
        for text, selected in settings.lines(snapshot.parameters):
            panel.append(PanelLine(text, "selected" if selected else "normal"))

    panel.append(PanelLine(" Logs ", "title"))
    if snapshot.fault is not None:
        panel.append(PanelLine(f"FAULT: {snapshot.fault}", "error"))
    for entry in list(log_entries)[-LOG_LINES_SHOWN:]:
        style = entry.level if entry.level in ("warning", "error") else "normal"
        panel.append(PanelLine(entry.message, style))

    panel.append(PanelLine(HELP_LINE, "title"))
    return Frame(render_grid(snapshot, camera), tuple(panel), status_line(snapshot, fps, tick_rate))
