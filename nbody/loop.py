#!/usr/bin/env python3
"""
Simulation loop: the single writer of simulation state.

What this module does
- Runs a fixed-rate stepping schedule on its own thread, decoupled from how
  often the renderer draws. Wall time is accumulated and converted into whole
  steps; when a tick falls behind, at most max_steps_per_tick steps run and the
  rest of the backlog is dropped.
- Accepts Commands from any thread through a FIFO queue and applies them
  between steps. Each submission returns a Future that resolves with the
  command's result, or fails with the error that rejected it.
- Publishes an immutable Snapshot after every tick that changed something.
  Readers only ever see whole snapshots; intermediate states inside a tick are
  never published.

Threading model
- SimulationLoop.run() is the only code that touches the Simulation.
- latest_snapshot() and submit() are safe to call from any thread.
- Between ticks the loop waits on an Event with a bounded timeout, so a new
  command (including Quit) wakes it early and shutdown takes at most one tick.
"""
import logging
import queue
import threading
import time
from collections import deque
from concurrent.futures import Future
from dataclasses import dataclass, replace
from typing import Callable, List, Optional, Tuple

from .commands import (
    AddBody,
    Command,
    EditBody,
    Pause,
    Quit,
    RemoveBody,
    Reset,
    Resume,
    SetParameter,
    StepOnce,
    TogglePause,
)
from .constants import DEFAULT_STEPS_PER_SECOND, EVENT_LOG_SIZE, FPS_SMOOTHING, MAX_STEPS_PER_TICK
from .data_models import Snapshot
from .errors import InternalInvariantViolation, SimulationError
from .simulation import Simulation, StepReport

logger = logging.getLogger(__name__)

# Commands still accepted after the stream has halted on a fault.
_ALLOWED_WHILE_FAULTED = (Pause, SetParameter, Reset, Quit)


@dataclass(frozen=True)
class LogEntry:
    level: str  # "info" | "warning" | "error"
    message: str


class EventLog:
    """Bounded, thread-safe list of user-visible notifications."""

    def __init__(self, maxlen: int = EVENT_LOG_SIZE):
        self._entries = deque(maxlen=maxlen)
        self._lock = threading.Lock()

    def add(self, level: str, message: str) -> None:
        with self._lock:
            self._entries.append(LogEntry(level, message))

    def tail(self, n: int) -> List[LogEntry]:
        with self._lock:
            entries = list(self._entries)
        return entries[-n:] if n > 0 else []

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class FpsCounter:
    """Exponential moving average of a rate, updated once per frame."""

    def __init__(self, initial: float = 60.0, smoothing: float = FPS_SMOOTHING):
        self.value = float(initial)
        self.smoothing = smoothing

    def update(self, elapsed: float) -> float:
        if elapsed > 0:
            self.value = self.value * self.smoothing + (1.0 / elapsed) * (1.0 - self.smoothing)
        return self.value


class SimulationLoop(threading.Thread):
    """
    Drives a Simulation at a fixed step rate and serializes all commands.

    Args:
        simulation: The simulation to drive. Nothing else may mutate it once
            the loop has started.
        steps_per_second: Wall-clock rate of simulation steps while running.
        max_steps_per_tick: Upper bound on catch-up steps in one tick.
        clock: Monotonic time source in seconds.
    """

    def __init__(self, simulation: Simulation, steps_per_second: float = DEFAULT_STEPS_PER_SECOND,
                 max_steps_per_tick: int = MAX_STEPS_PER_TICK,
                 clock: Callable[[], float] = time.perf_counter):
        super().__init__(name="simulation-loop", daemon=True)
        if steps_per_second <= 0:
            raise ValueError(f"steps_per_second must be positive, got {steps_per_second!r}")
        if max_steps_per_tick < 1:
            raise ValueError(f"max_steps_per_tick must be at least 1, got {max_steps_per_tick!r}")
        self.simulation = simulation
        self.tick_interval = 1.0 / steps_per_second
        self.max_steps_per_tick = int(max_steps_per_tick)
        self.events = EventLog()
        self.tick_rate = FpsCounter(initial=steps_per_second)

        self._clock = clock
        self._commands: "queue.Queue[Tuple[Command, Future]]" = queue.Queue()
        self._wakeup = threading.Event()
        self._stopped = threading.Event()
        self._lock = threading.Lock()
        self._accumulator = 0.0
        self._last_tick: Optional[float] = None
        self._snapshot = simulation.snapshot()
        self._last_good = self._snapshot

    # -----------------------
    # Thread-safe API
    # -----------------------

    @property
    def stopped(self) -> bool:
        return self._stopped.is_set()

    def latest_snapshot(self) -> Snapshot:
        with self._lock:
            return self._snapshot

    def submit(self, command: Command) -> Future:
        """Queue ``command`` for the loop thread. Order from one caller is preserved."""
        future: Future = Future()
        if self._stopped.is_set():
            future.set_exception(RuntimeError("simulation loop has stopped"))
            return future
        self._commands.put((command, future))
        self._wakeup.set()
        if self._stopped.is_set():
            # Lost the race with shutdown; nothing will drain the queue now.
            self._close()
        return future

    def stop(self) -> Future:
        return self.submit(Quit())

    # -----------------------
    # Loop thread
    # -----------------------

    def run(self) -> None:
        logger.info("Simulation loop started at %.1f steps/s", 1.0 / self.tick_interval)
        try:
            while not self._stopped.is_set():
                started = self._clock()
                self.tick(started)
                if self._stopped.is_set():
                    break
                remaining = self.tick_interval - (self._clock() - started)
                if remaining > 0:
                    self._wakeup.wait(remaining)
                self._wakeup.clear()
        except Exception:
            logger.exception("Simulation loop crashed")
            self.events.add("error", "simulation loop crashed, see log")
            raise
        finally:
            self._close()
            logger.info("Simulation loop stopped")

    def tick(self, now: Optional[float] = None) -> int:
        """
        One scheduling pass: apply queued commands, then run the steps that the
        elapsed wall time pays for. Returns the number of steps run.
        """
        now = self._clock() if now is None else now
        elapsed = 0.0 if self._last_tick is None else max(0.0, now - self._last_tick)
        self._last_tick = now
        self.tick_rate.update(elapsed)

        changed = self._drain_commands()
        sim = self.simulation
        steps = 0
        if sim.running and sim.fault is None and not self._stopped.is_set():
            self._accumulator += elapsed
            while self._accumulator >= self.tick_interval and steps < self.max_steps_per_tick:
                if self._step() is None:
                    changed = True
                    break
                self._accumulator -= self.tick_interval
                steps += 1
            if self._accumulator >= self.tick_interval:
                # Behind schedule: drop the backlog rather than spiral.
                self._accumulator %= self.tick_interval
        else:
            self._accumulator = 0.0

        if changed or steps:
            self._publish()
        return steps

    def _drain_commands(self) -> bool:
        changed = False
        while True:
            try:
                command, future = self._commands.get_nowait()
            except queue.Empty:
                break
            if not future.set_running_or_notify_cancel():
                continue
            changed = True
            try:
                result = self._apply(command)
            except SimulationError as exc:
                logger.warning("Rejected %s: %s", type(command).__name__, exc)
                self.events.add("warning", f"{type(command).__name__} rejected: {exc}")
                future.set_exception(exc)
            except Exception as exc:
                future.set_exception(exc)
                raise
            else:
                future.set_result(result)
            if isinstance(command, Quit):
                self._close()
                break
        return changed

    def _apply(self, command: Command):
        sim = self.simulation
        if sim.fault is not None and not isinstance(command, _ALLOWED_WHILE_FAULTED):
            raise InternalInvariantViolation(f"simulation halted, reset to continue: {sim.fault}")

        if isinstance(command, Pause):
            sim.pause()
            return False
        if isinstance(command, Resume):
            sim.resume()
            return True
        if isinstance(command, TogglePause):
            running = sim.toggle()
            self.events.add("info", "Running" if running else "Paused")
            return running
        if isinstance(command, StepOnce):
            if sim.running:
                self.events.add("info", "step once ignored while running")
                return None
            report = self._step()
            if report is None:
                raise InternalInvariantViolation(sim.fault)
            return report
        if isinstance(command, AddBody):
            body = sim.add_body(command.position, command.velocity, command.mass, command.name)
            self.events.add("info", f"added {body.name} (id {body.id})")
            logger.info("Added body %s (id=%d)", body.name, body.id)
            return body.id
        if isinstance(command, RemoveBody):
            body = sim.remove_body(command.body_id)
            self.events.add("info", f"removed {body.name} (id {body.id})")
            logger.info("Removed body %s (id=%d)", body.name, body.id)
            return body.id
        if isinstance(command, EditBody):
            body = sim.edit_body(command.body_id, command.position, command.velocity, command.mass)
            self.events.add("info", f"edited {body.name} (id {body.id})")
            return body.id
        if isinstance(command, SetParameter):
            params = sim.set_parameter(command.name, command.value)
            value = getattr(params, command.name)
            self.events.add("info", f"{command.name} = {value:g}" if isinstance(value, float) else f"{command.name} = {value}")
            return value
        if isinstance(command, Reset):
            sim.reset()
            self._last_good = sim.snapshot()
            self.events.add("info", "reset")
            return None
        if isinstance(command, Quit):
            self._stopped.set()
            return None
        raise TypeError(f"unknown command {command!r}")

    def _step(self) -> Optional[StepReport]:
        """Run one simulation step; returns None if the step halted the stream."""
        try:
            report = self.simulation.step()
        except InternalInvariantViolation as exc:
            self.events.add("error", f"FAULT: {exc}")
            self._accumulator = 0.0
            return None
        for gone in report.removed:
            self.events.add("info", f"{gone.name} (id {gone.id}) escaped")
        return report

    def _publish(self) -> None:
        sim = self.simulation
        if sim.fault is None:
            snapshot = sim.snapshot()
            self._last_good = snapshot
        else:
            # Bodies hold the bad state; keep showing the last good one.
            snapshot = replace(self._last_good, parameters=sim.parameters, running=False, fault=sim.fault)
        with self._lock:
            self._snapshot = snapshot

    def _close(self) -> None:
        self._stopped.set()
        while True:
            try:
                _, future = self._commands.get_nowait()
            except queue.Empty:
                break
            future.cancel()
