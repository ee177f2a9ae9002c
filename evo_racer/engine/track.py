from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from .data_models import Pose
from .geometry import Point, Polyline, Segment, heading_vector

ROAD_WIDTH = 8.0
CURVE_STEPS = 10
DEFAULT_CURVE_ANGLE = 90.0
SPAWN_OFFSET = 2.0


@dataclass(frozen=True)
class TrackSegment:
    """A straight ('s') or constant-radius curve ('c') piece of track."""

    kind: str
    length: float = 0.0
    radius: float = 0.0
    direction: str = "l"
    angle: float = DEFAULT_CURVE_ANGLE

    def __post_init__(self) -> None:
        if self.kind not in ("s", "c"):
            raise ValueError(f"Unknown segment type: {self.kind}")
        if self.kind == "s" and self.length <= 0:
            raise ValueError("straight segments need a positive length")
        if self.kind == "c":
            if self.radius <= 0:
                raise ValueError("curve segments need a positive radius")
            if self.direction not in ("l", "r"):
                raise ValueError(f"Unknown curve direction: {self.direction}")

    @classmethod
    def straight(cls, length: float) -> "TrackSegment":
        return cls("s", length=float(length))

    @classmethod
    def curve(cls, radius: float, direction: str, angle: float = DEFAULT_CURVE_ANGLE) -> "TrackSegment":
        return cls("c", radius=float(radius), direction=direction, angle=float(angle))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TrackSegment":
        kind = str(data.get("type", ""))[:1].lower()
        if kind == "s":
            return cls.straight(data["length"])
        direction = str(data.get("direction", "l"))[:1].lower()
        return cls.curve(data["radius"], direction, data.get("angle", DEFAULT_CURVE_ANGLE))


DEFAULT_SEGMENTS: Tuple[TrackSegment, ...] = (
    TrackSegment.straight(40),
    TrackSegment.curve(6, "l"),
    TrackSegment.straight(30),
    TrackSegment.curve(6, "l"),
    TrackSegment.straight(10),
    TrackSegment.curve(6, "r"),
    TrackSegment.straight(10),
    TrackSegment.curve(6, "r"),
    TrackSegment.straight(30),
    TrackSegment.curve(6, "r"),
    TrackSegment.straight(10),
    TrackSegment.curve(6, "l"),
    TrackSegment.straight(10),
    TrackSegment.curve(6, "l"),
    TrackSegment.straight(30),
    TrackSegment.curve(6, "l"),
    TrackSegment.straight(60),
    TrackSegment.curve(6, "l", 45),
    TrackSegment.straight(20),
    TrackSegment.curve(6, "l", 45),
    TrackSegment.straight(16),
    TrackSegment.curve(6, "r"),
    TrackSegment.straight(5),
    TrackSegment.curve(6, "l"),
    TrackSegment.straight(30),
    TrackSegment.curve(6, "l"),
)


def _offset(point: Point, heading_deg: float, amount: float) -> Point:
    nx, ny = heading_vector(math.radians(heading_deg + 90.0))
    return (point[0] + nx * amount, point[1] + ny * amount)


def _gate(point: Point, heading_deg: float, width: float) -> Segment:
    return Segment(_offset(point, heading_deg, width / 2), _offset(point, heading_deg, -width / 2))


class TrackLayout:
    """Closed loop built from track segments.

    Walls run either side of the centreline at half the road width. Every
    segment end except the last gets a checkpoint gate; the start/finish gate
    sits at the origin across the initial heading. Headings are in degrees
    while building and turning right increases the heading.
    """

    def __init__(
        self,
        segments: Optional[Iterable[TrackSegment]] = None,
        road_width: float = ROAD_WIDTH,
        curve_steps: int = CURVE_STEPS,
        track_id: str = "default",
    ) -> None:
        self.segments: Tuple[TrackSegment, ...] = tuple(DEFAULT_SEGMENTS if segments is None else segments)
        if not self.segments:
            raise ValueError("a track needs at least one segment")
        if road_width <= 0:
            raise ValueError("road_width must be positive")
        self.road_width = road_width
        self.curve_steps = max(1, curve_steps)
        self.track_id = track_id

        self.walls: List[Segment] = []
        self.checkpoint_gates: List[Segment] = []
        centre: List[Point] = [(0.0, 0.0)]
        self._build(centre)
        self.centreline = Polyline.from_points(centre)
        self.start_gate = _gate((0.0, 0.0), 0.0, road_width)
        self.finish_gate = self.start_gate

    @classmethod
    def from_definition(cls, definition: Sequence[Dict[str, Any]], **kwargs: Any) -> "TrackLayout":
        return cls([TrackSegment.from_dict(item) for item in definition], **kwargs)

    def _build(self, centre: List[Point]) -> None:
        half = self.road_width / 2
        position: Point = (0.0, 0.0)
        heading = 0.0
        last = len(self.segments) - 1

        for index, segment in enumerate(self.segments):
            if segment.kind == "s":
                dx, dy = heading_vector(math.radians(heading))
                end = (position[0] + dx * segment.length, position[1] + dy * segment.length)
                for side in (half, -half):
                    self.walls.append(Segment(_offset(position, heading, side), _offset(end, heading, side)))
                centre.append(end)
                position = end
            else:
                position, heading = self._build_curve(segment, position, heading, centre)

            if index != last:
                self.checkpoint_gates.append(_gate(position, heading, self.road_width))

        # close the loop back to the start line
        if position != (0.0, 0.0):
            for side in (half, -half):
                self.walls.append(Segment(_offset(position, heading, side), _offset((0.0, 0.0), heading, side)))
            centre.append((0.0, 0.0))

    def _build_curve(
        self, segment: TrackSegment, position: Point, heading: float, centre: List[Point]
    ) -> Tuple[Point, float]:
        sign = 1.0 if segment.direction == "r" else -1.0
        end_heading = heading + sign * segment.angle
        nx, ny = heading_vector(math.radians(heading + 90.0))
        cx = position[0] + sign * segment.radius * nx
        cy = position[1] + sign * segment.radius * ny

        def arc_point(theta_deg: float, radius: float) -> Point:
            ux, uy = heading_vector(math.radians(theta_deg - 90.0))
            return (cx + sign * radius * ux, cy + sign * radius * uy)

        half = self.road_width / 2
        step = (end_heading - heading) / self.curve_steps
        prev_inner = arc_point(heading, segment.radius - half)
        prev_outer = arc_point(heading, segment.radius + half)
        for i in range(1, self.curve_steps + 1):
            theta = heading + i * step
            inner = arc_point(theta, segment.radius - half)
            outer = arc_point(theta, segment.radius + half)
            self.walls.append(Segment(prev_inner, inner))
            self.walls.append(Segment(prev_outer, outer))
            centre.append(arc_point(theta, segment.radius))
            prev_inner, prev_outer = inner, outer

        return arc_point(end_heading, segment.radius), end_heading

    # --- TrackModel ----------------------------------------------------

    def checkpoint_count(self) -> int:
        return len(self.checkpoint_gates)

    def checkpoint_positions(self) -> List[Point]:
        return [gate.midpoint for gate in self.checkpoint_gates]

    def finish_position(self) -> Optional[Point]:
        return self.finish_gate.midpoint

    def start_pose(self) -> Pose:
        """Spawn just past the start line, facing along the first segment."""
        return Pose(SPAWN_OFFSET, 0.0, 0.0)
