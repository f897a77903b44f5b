#!/usr/bin/env python3
"""
Scene configuration: JSON templates and built-in presets.

A scene is the initial parameter set plus the initial bodies. It is only read
at startup (and kept by the Simulation for reset); nothing here is consulted
while the simulation runs.

Template JSON (templates/*.json):
{
  "name": "Human-friendly scene name",
  "description": "Optional description",
  "start_paused": true,                      # optional, default true
  "parameters": {                            # optional, any subset
    "gravitational_constant": 100.0,
    "time_step": 0.5,
    "damping_factor": 1.0,
    "max_acceleration_magnitude": 10.0,
    "softening_radius": 1.0,
    "escape_radius": 500.0,
    "trail_length": 200
  },
  "bodies": [
    {"name": "A", "mass": 1.0, "position": [-10.0, 0.0], "velocity": [0.0, -1.58]}
  ]
}

Users can add their own JSON files to templates/ and they'll be picked up by
list_templates().
"""
import json
import logging
import math
import os
import random
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple

from .constants import RANDOM_BODY_COUNT, RANDOM_BODY_MASS, RANDOM_POSITION_RANGE, RANDOM_VELOCITY_RANGE
from .data_models import Body, SimulationParameters
from .errors import ConfigError, InvalidBodyError, InvalidParameterError
from .physics import circular_orbit_velocity

logger = logging.getLogger(__name__)

TEMPLATES_DIR = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "templates")


@dataclass
class SceneConfig:
    name: str
    parameters: SimulationParameters = field(default_factory=SimulationParameters)
    bodies: List[Body] = field(default_factory=list)
    start_paused: bool = True
    description: str = ""
    # Fresh initial bodies for reset; None replays the bodies above.
    respawn: Optional[Callable[[], List[Body]]] = None


def _read_json(path: str) -> dict:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except OSError as exc:
        raise ConfigError(f"cannot read template {path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise ConfigError(f"template {path} is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"template {path} must contain a JSON object")
    return data


def parse_parameters(raw) -> SimulationParameters:
    if raw is None:
        return SimulationParameters()
    if not isinstance(raw, dict):
        raise InvalidParameterError(f"parameters must be an object, got {type(raw).__name__}")
    unknown = set(raw) - set(SimulationParameters.names())
    if unknown:
        raise InvalidParameterError(f"unknown parameter(s): {', '.join(sorted(unknown))}")
    return SimulationParameters(**raw)


def parse_body(raw, index: int) -> Body:
    if not isinstance(raw, dict):
        raise InvalidBodyError(f"body #{index} must be an object")
    try:
        return Body(
            id=index,
            name=str(raw.get("name", "")),
            mass=raw["mass"],
            position=raw["position"],
            velocity=raw["velocity"],
        )
    except KeyError as exc:
        raise InvalidBodyError(f"body #{index} is missing {exc.args[0]!r}") from None


def scene_from_dict(data: dict, default_name: str = "Scene") -> SceneConfig:
    bodies = [parse_body(b, i) for i, b in enumerate(data.get("bodies", []))]
    dims = {b.dimensions for b in bodies}
    if len(dims) > 1:
        raise InvalidBodyError("all bodies in a scene must have the same dimension")
    return SceneConfig(
        name=data.get("name") or default_name,
        parameters=parse_parameters(data.get("parameters")),
        bodies=bodies,
        start_paused=bool(data.get("start_paused", True)),
        description=data.get("description", ""),
    )


def list_templates() -> List[Tuple[str, str]]:
    """Return list of (file_name, display_name) for available templates."""
    items: List[Tuple[str, str]] = []
    if not os.path.isdir(TEMPLATES_DIR):
        return items
    for fn in sorted(os.listdir(TEMPLATES_DIR)):
        if not fn.lower().endswith(".json"):
            continue
        try:
            display = _read_json(os.path.join(TEMPLATES_DIR, fn)).get("name")
        except ConfigError as exc:
            logger.warning("Skipping template %s: %s", fn, exc)
            continue
        items.append((fn, display or os.path.splitext(fn)[0]))
    return items


def load_template(path: str) -> SceneConfig:
    """
    Load a template from ``path``. A bare file name is looked up in templates/.
    """
    if not os.path.isabs(path) and not os.path.exists(path):
        path = os.path.join(TEMPLATES_DIR, path)
    data = _read_json(path)
    scene = scene_from_dict(data, default_name=os.path.splitext(os.path.basename(path))[0])
    logger.info("Loaded template %s (%d bodies)", scene.name, len(scene.bodies))
    return scene


# ============================================================
# Built-in presets
# ============================================================

def preset_random(seed: Optional[int] = None) -> SceneConfig:
    """
    Three unit masses scattered in a 100x100 box with small random drift.

    Resetting the scene rolls new bodies from the same generator, so a seeded
    run replays the same sequence of scenes.
    """
    rng = random.Random(seed)

    def roll() -> List[Body]:
        return [random_body(rng, i) for i in range(RANDOM_BODY_COUNT)]

    return SceneConfig("Random", SimulationParameters(), roll(), respawn=roll)


def random_body(rng: random.Random, body_id: int = 0) -> Body:
    return Body(
        id=body_id,
        mass=RANDOM_BODY_MASS,
        position=(rng.uniform(-RANDOM_POSITION_RANGE, RANDOM_POSITION_RANGE),
                  rng.uniform(-RANDOM_POSITION_RANGE, RANDOM_POSITION_RANGE)),
        velocity=(rng.uniform(-RANDOM_VELOCITY_RANGE, RANDOM_VELOCITY_RANGE),
                  rng.uniform(-RANDOM_VELOCITY_RANGE, RANDOM_VELOCITY_RANGE)),
    )


def preset_two_body(seed: Optional[int] = None) -> SceneConfig:
    """Equal-mass binary on a circular orbit around the origin."""
    params = SimulationParameters(time_step=0.5, damping_factor=1.0, max_acceleration_magnitude=10.0)
    m, d = 1.0, 20.0
    # Each body circles the centre at d/2 under G*m/d^2: v^2 = G*m/(2*d)
    v = math.sqrt(params.gravitational_constant * m / (2.0 * d))
    bodies = [
        Body(0, m, (-d / 2, 0.0), (0.0, -v), name="A"),
        Body(1, m, (d / 2, 0.0), (0.0, v), name="B"),
    ]
    return SceneConfig("Two-body", params, bodies)


def preset_figure_eight(seed: Optional[int] = None) -> SceneConfig:
    """Equal-mass figure-eight periodic solution (Chenciner-Montgomery), scaled up."""
    params = SimulationParameters(time_step=0.1, damping_factor=1.0,
                                  max_acceleration_magnitude=10.0, softening_radius=0.5)
    m, length = 1.0, 40.0
    speed = math.sqrt(params.gravitational_constant * m / length)
    r = [(-0.97000436, 0.24308753), (0.97000436, -0.24308753), (0.0, 0.0)]
    v = [(0.4662036850, 0.4323657300), (0.4662036850, 0.4323657300), (-0.93240737, -0.86473146)]
    bodies = [
        Body(i, m, (r[i][0] * length, r[i][1] * length), (v[i][0] * speed, v[i][1] * speed), name=n)
        for i, n in enumerate("ABC")
    ]
    return SceneConfig("Figure-eight", params, bodies)


def preset_lagrange(seed: Optional[int] = None) -> SceneConfig:
    """Three equal masses on an equilateral triangle, rotating rigidly."""
    params = SimulationParameters(time_step=0.2, damping_factor=1.0, max_acceleration_magnitude=10.0)
    m, radius = 1.0, 40.0
    # Net pull on each mass is G*m/(sqrt(3)*R^2), towards the centre.
    v = math.sqrt(params.gravitational_constant * m / (math.sqrt(3.0) * radius))
    bodies = []
    for i, name in enumerate("ABC"):
        angle = math.pi / 2 + i * 2 * math.pi / 3
        x, y = radius * math.cos(angle), radius * math.sin(angle)
        bodies.append(Body(i, m, (x, y), (-math.sin(angle) * v, math.cos(angle) * v), name=name))
    return SceneConfig("Lagrange triangle", params, bodies)


def preset_solar(seed: Optional[int] = None) -> SceneConfig:
    """A heavy star with three light planets on circular orbits."""
    params = SimulationParameters(gravitational_constant=1.0, time_step=0.05, damping_factor=1.0,
                                  max_acceleration_magnitude=10.0, escape_radius=500.0)
    star = 1000.0
    bodies = [Body(0, star, (0.0, 0.0), (0.0, 0.0), name="Star")]
    for i, r in enumerate((20.0, 40.0, 70.0), start=1):
        v = circular_orbit_velocity(params.gravitational_constant, star, r)
        bodies.append(Body(i, 1.0, (r, 0.0), (0.0, v), name=f"Planet {i}"))
    return SceneConfig("Star and planets", params, bodies)


PRESETS: Dict[str, Callable[[Optional[int]], SceneConfig]] = {
    "random": preset_random,
    "two-body": preset_two_body,
    "figure-eight": preset_figure_eight,
    "lagrange": preset_lagrange,
    "solar": preset_solar,
}


def list_presets() -> List[str]:
    return list(PRESETS)


def build_preset(name: str, seed: Optional[int] = None) -> SceneConfig:
    try:
        factory = PRESETS[name]
    except KeyError:
        raise ConfigError(f"unknown preset {name!r}; choose from {', '.join(PRESETS)}") from None
    return factory(seed)
