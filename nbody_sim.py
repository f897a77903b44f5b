#!/usr/bin/env python3
"""
N-body simulator entry point: character-grid viewport and control panel.

What this module does
- Parses the command line, builds the initial scene (built-in preset or JSON
  template) and starts the SimulationLoop thread, which owns the Simulation.
- Runs a Pygame window that paints the character grid composed by
  nbody.text_canvas, and turns key presses into Commands.
- Optionally runs a Dear PyGui control panel for typing in parameter values,
  adding bodies and removing them.

Threading model
- SimulationLoop thread: the only writer of simulation state.
- GridRenderer thread: reads loop.latest_snapshot() at its own frame rate and
  submits commands; it never waits on the loop.
- Main thread: the Dear PyGui panel (or the renderer itself with --no-controls).
  The panel also only reads snapshots and submits commands.

Running
1) Install dependencies: `pip install -e .`
2) Run: `python nbody_sim.py --preset figure-eight`
   Keys: Q quit, Space pause/resume, S step once, R reset, arrows adjust the
   settings block, A add a random body, X remove the newest body, +/- zoom,
   F follow the main cluster, left click adds a body at the cursor.
"""

import argparse
import logging
import random
import sys
import threading
from typing import Dict, Optional, Tuple

import pygame
import dearpygui.dearpygui as dpg

from nbody.camera import GridCamera
from nbody.commands import AddBody, EditBody, Quit, RemoveBody, Reset, SetParameter, StepOnce, TogglePause
from nbody.constants import (
    BACKGROUND_COLOR,
    BODY_COLORS,
    CELL_HEIGHT,
    CELL_WIDTH,
    DEFAULT_STEPS_PER_SECOND,
    ERROR_COLOR,
    GRID_COLUMNS,
    GRID_ROWS,
    PANEL_COLUMNS,
    RANDOM_BODY_MASS,
    RENDER_FPS,
    SELECTED_BG_COLOR,
    SELECTED_TEXT_COLOR,
    TEXT_COLOR,
    WARNING_COLOR,
)
from nbody.data_models import SimulationParameters
from nbody.errors import SimulationError
from nbody.loop import FpsCounter, SimulationLoop
from nbody.presets_loader import SceneConfig, build_preset, list_presets, load_template, random_body
from nbody.settings import SettingsBlock
from nbody.simulation import Simulation
from nbody.text_canvas import Frame, body_id_from_label, body_label, compose_frame

logger = logging.getLogger("nbody_sim")

GRID_BORDER_COLOR = (40, 45, 60)
TITLE_COLOR = (120, 160, 255)


def try_float(val) -> Optional[float]:
    try:
        return float(val)
    except (TypeError, ValueError):
        return None


# ============================================================
# Pygame character-grid renderer
# ============================================================

class GridRenderer(threading.Thread):
    """
    Pygame loop: paints the latest snapshot as a character grid plus the side
    panel, and turns keyboard/mouse input into commands.
    """
    def __init__(self, loop: SimulationLoop, columns: int = GRID_COLUMNS, rows: int = GRID_ROWS,
                 fps: int = RENDER_FPS, seed: Optional[int] = None):
        super().__init__(name="grid-renderer", daemon=True)
        self.loop = loop
        self.camera = GridCamera(columns, rows)
        self.settings = SettingsBlock()
        self.fps_target = fps
        self.fps = FpsCounter(initial=fps)
        self.rng = random.Random(seed)
        self.running = True
        self.surface = None
        self.font = None
        self._glyphs: Dict[Tuple[str, Tuple[int, int, int]], "pygame.Surface"] = {}

    def window_size(self) -> Tuple[int, int]:
        width = (self.camera.columns + PANEL_COLUMNS) * CELL_WIDTH
        height = (self.camera.rows + 1) * CELL_HEIGHT
        return (width, height)

    def run(self):
        pygame.init()
        try:
            pygame.display.set_caption("N-Body Simulation")
            self.surface = pygame.display.set_mode(self.window_size())
            self.font = pygame.font.SysFont("dejavusansmono,consolas,menlo,couriernew,monospace", CELL_HEIGHT - 4)
            clock = pygame.time.Clock()
            while self.running and not self.loop.stopped:
                self.handle_events()
                snapshot = self.loop.latest_snapshot()
                if self.camera.following:
                    self.camera.follow(snapshot)
                frame = compose_frame(snapshot, self.camera, self.settings,
                                      self.loop.events.tail(10), self.fps.value,
                                      tick_rate=self.loop.tick_rate.value)
                self.draw(frame)
                self.fps.update(clock.tick(self.fps_target) / 1000.0)
        finally:
            self.running = False
            pygame.quit()

    # -----------------------
    # Input
    # -----------------------

    def handle_events(self):
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                self.quit()
            elif event.type == pygame.KEYDOWN:
                self.handle_key(event.key)
            elif event.type == pygame.MOUSEBUTTONDOWN and event.button == 1:
                col, row = event.pos[0] // CELL_WIDTH, event.pos[1] // CELL_HEIGHT
                if col < self.camera.columns and row < self.camera.rows:
                    pos = self.camera.cell_to_world((col, row))
                    self.loop.submit(AddBody(pos, (0.0, 0.0), RANDOM_BODY_MASS))
            elif event.type == pygame.MOUSEWHEEL:
                self.camera.zoom(1.1 if event.y > 0 else 1.0 / 1.1)

    def handle_key(self, key):
        snapshot = self.loop.latest_snapshot()
        if key == pygame.K_q:
            self.quit()
        elif key == pygame.K_SPACE:
            self.loop.submit(TogglePause())
        elif key == pygame.K_s:
            self.loop.submit(StepOnce())
        elif key == pygame.K_r:
            self.loop.submit(Reset())
        elif key == pygame.K_UP:
            self.settings.up()
        elif key == pygame.K_DOWN:
            self.settings.down()
        elif key == pygame.K_LEFT:
            self.loop.submit(self.settings.decrement(snapshot.parameters))
        elif key == pygame.K_RIGHT:
            self.loop.submit(self.settings.increment(snapshot.parameters))
        elif key == pygame.K_a:
            body = random_body(self.rng)
            self.loop.submit(AddBody(body.position, body.velocity, body.mass))
        elif key == pygame.K_x:
            if snapshot.bodies:
                self.loop.submit(RemoveBody(max(b.id for b in snapshot.bodies)))
        elif key in (pygame.K_PLUS, pygame.K_EQUALS, pygame.K_KP_PLUS):
            self.camera.zoom(1.25)
        elif key in (pygame.K_MINUS, pygame.K_KP_MINUS):
            self.camera.zoom(0.8)
        elif key == pygame.K_f:
            self.camera.following = not self.camera.following

    def quit(self):
        self.loop.submit(Quit())
        self.running = False

    # -----------------------
    # Drawing
    # -----------------------

    def glyph(self, ch: str, color) -> "pygame.Surface":
        key = (ch, color)
        surf = self._glyphs.get(key)
        if surf is None:
            surf = self.font.render(ch, True, color)
            self._glyphs[key] = surf
        return surf

    def draw(self, frame: Frame):
        surf = self.surface
        surf.fill(BACKGROUND_COLOR)

        grid = frame.grid
        for row, cells in enumerate(grid.cells):
            for col, (ch, color_idx) in enumerate(cells):
                if ch == " ":
                    continue
                color = BODY_COLORS[color_idx] if color_idx is not None else TEXT_COLOR
                surf.blit(self.glyph(ch, color), (col * CELL_WIDTH, row * CELL_HEIGHT))
        pygame.draw.rect(surf, GRID_BORDER_COLOR,
                         (0, 0, grid.columns * CELL_WIDTH, grid.rows * CELL_HEIGHT), 1)

        x0 = grid.columns * CELL_WIDTH + CELL_WIDTH
        for i, line in enumerate(frame.panel[:grid.rows]):
            y = i * CELL_HEIGHT
            text = line.text.replace("\t", "  ")
            if line.style == "selected":
                color = SELECTED_TEXT_COLOR
                pygame.draw.rect(surf, SELECTED_BG_COLOR,
                                 (x0, y, (PANEL_COLUMNS - 2) * CELL_WIDTH, CELL_HEIGHT))
            elif line.style == "title":
                color = TITLE_COLOR
            elif line.style == "warning":
                color = WARNING_COLOR
            elif line.style == "error":
                color = ERROR_COLOR
            elif line.color_index is not None:
                color = BODY_COLORS[line.color_index]
            else:
                color = TEXT_COLOR
            surf.blit(self.font.render(text[:PANEL_COLUMNS - 2], True, color), (x0, y))

        status_color = ERROR_COLOR if "[FAULT]" in frame.status else TEXT_COLOR
        surf.blit(self.font.render(frame.status, True, status_color), (0, grid.rows * CELL_HEIGHT))

        pygame.display.flip()


# ============================================================
# Dear PyGui control panel
# ============================================================

class ControlsUI:
    """
    Dear PyGui interface: parameter fields, add/remove bodies, run controls.
    Every action is submitted to the loop; the panel never touches the
    simulation directly.
    """
    def __init__(self, loop: SimulationLoop):
        self.loop = loop
        self.param_ids: Dict[str, int] = {}
        self.body_list_id = None
        self.status_msg_id = None
        self.mass_id = None
        self.pos_x_id = None
        self.pos_y_id = None
        self.vel_x_id = None
        self.vel_y_id = None
        self.edit_mass_id = None
        self.edit_pos_x_id = None
        self.edit_pos_y_id = None
        self.edit_vel_x_id = None
        self.edit_vel_y_id = None
        self._body_items = []
        self._last_params = None

        self._build_ui()
        self._schedule_sync()

    def _schedule_sync(self):
        """Reschedule the periodic sync callback using frame callbacks (~every 6 frames)."""
        dpg.set_frame_callback(dpg.get_frame_count() + 6, self._sync_ui_with_loop)

    def _build_ui(self):
        dpg.create_context()
        dpg.create_viewport(title="N-Body Simulation - Controls", width=460, height=800)

        params = self.loop.latest_snapshot().parameters
        with dpg.window(label="Controls", tag="main_window"):
            dpg.add_text("Simulation Controls")
            with dpg.group(horizontal=True):
                dpg.add_button(label="Play/Pause", callback=lambda: self._submit(TogglePause()))
                dpg.add_button(label="Step", callback=lambda: self._submit(StepOnce()))
                dpg.add_button(label="Reset", callback=lambda: self._submit(Reset()))
                dpg.add_button(label="Quit", callback=lambda: self._submit(Quit()))

            dpg.add_separator()
            dpg.add_text("Parameters (Enter to apply)")
            for name in SimulationParameters.names():
                value = getattr(params, name)
                self.param_ids[name] = dpg.add_input_text(
                    label=name, default_value=self._format_param(value), width=160, on_enter=True,
                    callback=self._on_param_entered, user_data=name)

            dpg.add_separator()
            dpg.add_text("Add Body")
            self.mass_id = dpg.add_input_text(label="Mass", default_value="1.0", width=120)
            with dpg.group(horizontal=True):
                self.pos_x_id = dpg.add_input_text(label="Pos X", default_value="0.0", width=100)
                self.pos_y_id = dpg.add_input_text(label="Pos Y", default_value="0.0", width=100)
            with dpg.group(horizontal=True):
                self.vel_x_id = dpg.add_input_text(label="Vel X", default_value="0.0", width=100)
                self.vel_y_id = dpg.add_input_text(label="Vel Y", default_value="0.0", width=100)
            dpg.add_button(label="Add Body", callback=self._on_add_body_clicked)

            dpg.add_separator()
            dpg.add_text("Current Bodies")
            self.body_list_id = dpg.add_listbox(items=[], width=420, num_items=6,
                                                callback=lambda s, a, u: self._populate_edit_fields())
            dpg.add_button(label="Remove Selected", callback=self._on_remove_selected)

            dpg.add_separator()
            dpg.add_text("Edit Selected Body")
            self.edit_mass_id = dpg.add_input_text(label="Mass##edit", default_value="", width=120)
            with dpg.group(horizontal=True):
                self.edit_pos_x_id = dpg.add_input_text(label="Pos X##edit", default_value="", width=100)
                self.edit_pos_y_id = dpg.add_input_text(label="Pos Y##edit", default_value="", width=100)
            with dpg.group(horizontal=True):
                self.edit_vel_x_id = dpg.add_input_text(label="Vel X##edit", default_value="", width=100)
                self.edit_vel_y_id = dpg.add_input_text(label="Vel Y##edit", default_value="", width=100)
            dpg.add_button(label="Apply Body Edits", callback=self._on_apply_edits)

            dpg.add_separator()
            self.status_msg_id = dpg.add_text("")

        dpg.setup_dearpygui()
        dpg.show_viewport()
        dpg.set_primary_window("main_window", True)

    @staticmethod
    def _format_param(value) -> str:
        if value is None:
            return "0"
        return f"{value:g}" if isinstance(value, float) else str(value)

    # -----------------------
    # UI Callbacks
    # -----------------------

    def _submit(self, command):
        self.loop.submit(command)

    def _set_status(self, msg: str, color=(180, 220, 180)):
        dpg.set_value(self.status_msg_id, msg)
        dpg.configure_item(self.status_msg_id, color=color)

    def _set_error(self, msg: str):
        self._set_status(msg, color=ERROR_COLOR)

    def _on_param_entered(self, sender, app_data, user_data):
        value = try_float(app_data)
        if value is None:
            self._set_error(f"{user_data}: not a number")
            return
        self._submit(SetParameter(user_data, value))

    def _on_add_body_clicked(self):
        values = [try_float(dpg.get_value(i)) for i in
                  (self.mass_id, self.pos_x_id, self.pos_y_id, self.vel_x_id, self.vel_y_id)]
        if None in values:
            self._set_error("Invalid numeric input.")
            return
        mass, px, py, vx, vy = values
        position, velocity = (px, py), (vx, vy)
        bodies = self.loop.latest_snapshot().bodies
        if bodies and len(bodies[0].position) == 3:
            position, velocity = position + (0.0,), velocity + (0.0,)
        # Mass is validated by the simulation; a rejection shows up in the log.
        self._submit(AddBody(position, velocity, mass))

    def _selected_body(self):
        body_id = body_id_from_label(dpg.get_value(self.body_list_id))
        if body_id is None:
            return None
        return self.loop.latest_snapshot().find(body_id)

    def _on_remove_selected(self):
        body = self._selected_body()
        if body is None:
            self._set_error("No body selected.")
            return
        self._submit(RemoveBody(body.id))

    def _populate_edit_fields(self):
        body = self._selected_body()
        if body is None:
            return
        dpg.set_value(self.edit_mass_id, f"{body.mass:g}")
        dpg.set_value(self.edit_pos_x_id, f"{body.position[0]:.4f}")
        dpg.set_value(self.edit_pos_y_id, f"{body.position[1]:.4f}")
        dpg.set_value(self.edit_vel_x_id, f"{body.velocity[0]:.4f}")
        dpg.set_value(self.edit_vel_y_id, f"{body.velocity[1]:.4f}")

    def _on_apply_edits(self):
        body = self._selected_body()
        if body is None:
            self._set_error("No body selected to edit.")
            return
        values = [try_float(dpg.get_value(i)) for i in
                  (self.edit_mass_id, self.edit_pos_x_id, self.edit_pos_y_id, self.edit_vel_x_id, self.edit_vel_y_id)]
        if None in values:
            self._set_error("Invalid inputs in edit form.")
            return
        mass, px, py, vx, vy = values
        # The form only shows x and y; any z component is kept.
        position = (px, py) + tuple(body.position[2:])
        velocity = (vx, vy) + tuple(body.velocity[2:])
        self._submit(EditBody(body.id, position=position, velocity=velocity, mass=mass))

    def _sync_ui_with_loop(self):
        if self.loop.stopped:
            dpg.stop_dearpygui()
            return
        snapshot = self.loop.latest_snapshot()
        items = [body_label(b) for b in snapshot.bodies]
        if items != self._body_items:
            self._body_items = items
            dpg.configure_item(self.body_list_id, items=items)
        # Refresh parameter fields only when the parameters changed, so typing is not clobbered.
        if snapshot.parameters != self._last_params:
            self._last_params = snapshot.parameters
            for name, item in self.param_ids.items():
                dpg.set_value(item, self._format_param(getattr(snapshot.parameters, name)))
        entries = self.loop.events.tail(1)
        if entries:
            entry = entries[0]
            color = {"warning": WARNING_COLOR, "error": ERROR_COLOR}.get(entry.level, (180, 220, 180))
            self._set_status(entry.message, color)
        self._schedule_sync()


# ============================================================
# Application entry
# ============================================================

def build_scene(args) -> SceneConfig:
    if args.template:
        return load_template(args.template)
    return build_preset(args.preset, seed=args.seed)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="N-body gravity simulation on a character grid")
    parser.add_argument("--preset", default="random", choices=list_presets(),
                        help="built-in scene (default: random)")
    parser.add_argument("--template", metavar="PATH", help="load the scene from a JSON template instead")
    parser.add_argument("--seed", type=int, default=None, help="seed for random scenes and added bodies")
    parser.add_argument("--rate", type=float, default=DEFAULT_STEPS_PER_SECOND,
                        help="simulation steps per wall-clock second")
    parser.add_argument("--fps", type=int, default=RENDER_FPS, help="render frames per second")
    parser.add_argument("--columns", type=int, default=GRID_COLUMNS)
    parser.add_argument("--rows", type=int, default=GRID_ROWS)
    parser.add_argument("--run", action="store_true", help="start running instead of paused")
    parser.add_argument("--no-controls", action="store_true", help="do not open the control panel")
    parser.add_argument("--log-level", default="WARNING",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"])
    args = parser.parse_args(argv)
    if args.rate <= 0:
        parser.error("--rate must be positive")
    if args.fps <= 0 or args.columns <= 0 or args.rows <= 0:
        parser.error("--fps, --columns and --rows must be positive")
    return parser, args


def main(argv=None) -> int:
    parser, args = parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level),
                        format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    try:
        scene = build_scene(args)
    except SimulationError as exc:
        parser.error(str(exc))

    sim = Simulation(scene.bodies, scene.parameters, start_paused=scene.start_paused and not args.run,
                     respawn=scene.respawn)
    logger.info("Scene %s: %d bodies", scene.name, len(sim.bodies))

    loop = SimulationLoop(sim, steps_per_second=args.rate)
    renderer = GridRenderer(loop, args.columns, args.rows, fps=args.fps, seed=args.seed)
    loop.start()
    try:
        if args.no_controls:
            renderer.run()
        else:
            renderer.start()
            ControlsUI(loop)
            with dpg.handler_registry():
                def key_press(sender, app_data):
                    if app_data == dpg.mvKey_Spacebar:
                        loop.submit(TogglePause())
                dpg.add_key_press_handler(callback=key_press)
            try:
                dpg.start_dearpygui()
            finally:
                dpg.destroy_context()
    finally:
        loop.stop()
        renderer.running = False
        if renderer.is_alive():
            renderer.join(timeout=2.0)
        loop.join(timeout=2.0)
    return 0


if __name__ == "__main__":
    sys.exit(main())
