#!/usr/bin/env python3
"""
Camera utilities for mapping world coordinates onto a character grid.
"""
import math
from typing import Optional, Sequence, Tuple

from .constants import CENTROID_INLIER_RADIUS, FOLLOW_GAIN, GRID_COLUMNS, GRID_ROWS, MAX_ZOOM, MIN_ZOOM, WORLD_BOUNDS
from .data_models import Snapshot
from .vector_utils import Vector, clamp


def ransac_centroid(points: Sequence[Vector], inlier_radius: float = CENTROID_INLIER_RADIUS) -> Tuple[float, float]:
    """
    Centroid of the largest cluster of points (x, y only).

    Every point is tried as a candidate centre; the candidate with the most
    points within ``inlier_radius`` wins and the mean of its inliers is
    returned. Far-flung stragglers therefore do not drag the view away.
    """
    best = (0.0, 0.0)
    highest_inliers = 0
    for cx, cy, *_ in points:
        inliers = [p for p in points if math.hypot(p[0] - cx, p[1] - cy) < inlier_radius]
        if len(inliers) > highest_inliers:
            highest_inliers = len(inliers)
            best = (
                sum(p[0] for p in inliers) / len(inliers),
                sum(p[1] for p in inliers) / len(inliers),
            )
    return best


class GridCamera:
    """
    Maps world coordinates to (column, row) cells of a fixed-size grid.

    The visible world region is centred on ``center`` and spans the width and
    height of ``bounds`` divided by ``zoom``. World y grows upwards, rows grow
    downwards.
    """

    def __init__(self, columns: int = GRID_COLUMNS, rows: int = GRID_ROWS, bounds=WORLD_BOUNDS):
        x_min, x_max, y_min, y_max = bounds
        if x_max <= x_min or y_max <= y_min:
            raise ValueError(f"invalid world bounds {bounds!r}")
        self.columns = columns
        self.rows = rows
        self.center = [(x_min + x_max) / 2, (y_min + y_max) / 2]
        self.base_extent = (x_max - x_min, y_max - y_min)
        self.zoom_level = 1.0
        self.following = False

    def set_grid_size(self, columns: int, rows: int) -> None:
        self.columns = max(1, int(columns))
        self.rows = max(1, int(rows))

    @property
    def extent(self) -> Tuple[float, float]:
        return (self.base_extent[0] / self.zoom_level, self.base_extent[1] / self.zoom_level)

    def bounds(self) -> Tuple[float, float, float, float]:
        w, h = self.extent
        cx, cy = self.center
        return (cx - w / 2, cx + w / 2, cy - h / 2, cy + h / 2)

    def world_to_cell(self, pos: Vector) -> Optional[Tuple[int, int]]:
        """Cell containing ``pos``, or None when it is outside the view."""
        x_min, x_max, y_min, y_max = self.bounds()
        x, y = pos[0], pos[1]
        if not (x_min <= x < x_max and y_min < y <= y_max):
            return None
        col = int((x - x_min) / (x_max - x_min) * self.columns)
        row = int((y_max - y) / (y_max - y_min) * self.rows)
        return (min(col, self.columns - 1), min(row, self.rows - 1))

    def cell_to_world(self, cell: Tuple[int, int]) -> Tuple[float, float]:
        """World position at the centre of ``cell``."""
        x_min, x_max, y_min, y_max = self.bounds()
        col, row = cell
        x = x_min + (col + 0.5) / self.columns * (x_max - x_min)
        y = y_max - (row + 0.5) / self.rows * (y_max - y_min)
        return (x, y)

    def zoom(self, factor: float) -> None:
        factor = clamp(factor, 0.05, 20.0)
        self.zoom_level = clamp(self.zoom_level * factor, MIN_ZOOM, MAX_ZOOM)

    def pan_cells(self, d_columns: float, d_rows: float) -> None:
        w, h = self.extent
        self.center[0] += d_columns * w / self.columns
        self.center[1] -= d_rows * h / self.rows

    def follow(self, snapshot: Snapshot, gain: float = FOLLOW_GAIN) -> None:
        """Move the view centre a fraction ``gain`` toward the main cluster."""
        if not snapshot.bodies:
            return
        cx, cy = ransac_centroid([b.position for b in snapshot.bodies])
        self.center[0] += (cx - self.center[0]) * gain
        self.center[1] += (cy - self.center[1]) * gain
