from __future__ import annotations

import bisect
import math
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple

Point = Tuple[float, float]


def distance(a: Point, b: Point) -> float:
    dx = b[0] - a[0]
    dy = b[1] - a[1]
    return (dx * dx + dy * dy) ** 0.5


def lerp(a: Point, b: Point, t: float) -> Point:
    return (a[0] + (b[0] - a[0]) * t, a[1] + (b[1] - a[1]) * t)


def heading_vector(angle: float) -> Point:
    return (math.cos(angle), math.sin(angle))


def _cross(ax: float, ay: float, bx: float, by: float) -> float:
    return ax * by - ay * bx


def segment_intersection(p0: Point, p1: Point, q0: Point, q1: Point) -> Optional[float]:
    """Returns t along p0->p1 where it crosses q0->q1, or None when they miss."""
    rx, ry = p1[0] - p0[0], p1[1] - p0[1]
    sx, sy = q1[0] - q0[0], q1[1] - q0[1]
    denom = _cross(rx, ry, sx, sy)
    if abs(denom) < 1e-12:
        return None
    qpx, qpy = q0[0] - p0[0], q0[1] - p0[1]
    t = _cross(qpx, qpy, sx, sy) / denom
    u = _cross(qpx, qpy, rx, ry) / denom
    if 0.0 <= t <= 1.0 and 0.0 <= u <= 1.0:
        return t
    return None


@dataclass(frozen=True)
class Segment:
    start: Point
    end: Point

    @property
    def midpoint(self) -> Point:
        return lerp(self.start, self.end, 0.5)


@dataclass
class Polyline:
    """Arc-length aware polyline used for track centrelines."""

    points: Sequence[Point]
    cumulative_lengths: Sequence[float]
    length: float

    @classmethod
    def from_points(cls, points: Iterable[Point]) -> "Polyline":
        pts: List[Point] = list(points)
        if len(pts) < 2:
            raise ValueError("Polyline requires at least two points")

        cumulative: List[float] = [0.0]
        for idx in range(1, len(pts)):
            cumulative.append(cumulative[-1] + distance(pts[idx - 1], pts[idx]))

        return cls(points=tuple(pts), cumulative_lengths=tuple(cumulative), length=cumulative[-1])

    def position_at(self, arc: float) -> Point:
        """Returns the coordinate at a distance along the polyline."""
        if arc <= 0:
            return self.points[0]
        if arc >= self.length:
            return self.points[-1]

        idx, t = self._segment_parameters(arc)
        return lerp(self.points[idx - 1], self.points[idx], t)

    def tangent_at(self, arc: float) -> Point:
        """Returns the unit tangent vector at the given arc-length."""
        idx, _ = self._segment_parameters(arc)
        tangent = (
            self.points[idx][0] - self.points[idx - 1][0],
            self.points[idx][1] - self.points[idx - 1][1],
        )
        magnitude = math.hypot(*tangent)
        if magnitude == 0.0:
            return (1.0, 0.0)
        return (tangent[0] / magnitude, tangent[1] / magnitude)

    def normal_at(self, arc: float) -> Point:
        """Returns the unit normal vector (rotated left) at the given arc-length."""
        tx, ty = self.tangent_at(arc)
        return (-ty, tx)

    def segments(self) -> List[Segment]:
        return [Segment(self.points[i - 1], self.points[i]) for i in range(1, len(self.points))]

    def _segment_parameters(self, arc: float) -> Tuple[int, float]:
        """Index of the segment end point at or past `arc`, and the fraction along it."""
        last = len(self.points) - 1
        if arc <= 0:
            return 1, 0.0
        if arc >= self.length:
            return last, 1.0
        idx = min(last, max(1, bisect.bisect_left(self.cumulative_lengths, arc)))
        start = self.cumulative_lengths[idx - 1]
        span = self.cumulative_lengths[idx] - start
        if span == 0.0:
            return idx, 0.0
        return idx, min(1.0, (arc - start) / span)
