# -*- coding: utf-8 -*-
"""
Boundary curves of cut cells and embedded objects.

A cut cell is bounded by a closed, counterclockwise, piecewise curve made of
straight pieces of the background cell edges and arcs of the embedded
object. The curve is parametrized on [0, n] for n segments, and the integer
parameters ``stop_pts = 0, 1, ..., n`` are its break points. ``stop_pts[-1]``
and ``stop_pts[0]`` are the same point.

Key Features:
- `LineSegment` and `ArcSegment`: segments parametrized on [0, 1].
- `PiecewiseCurve`: vectorized evaluation of a closed piecewise curve.
- `Circle`: an embedded circular object, with point containment, segment
  crossings and the clockwise arcs that bound the domain outside it.
"""
from dataclasses import dataclass
from typing import List, Sequence

import numpy as np


@dataclass(frozen=True, eq=False)
class LineSegment:
    """Straight segment from ``start`` to ``end``."""

    start: np.ndarray
    end: np.ndarray

    def __call__(self, t) -> np.ndarray:
        t = np.asarray(t, dtype=float)
        start = np.asarray(self.start, dtype=float)
        end = np.asarray(self.end, dtype=float)
        return start + t[..., None] * (end - start)

    def split(self, num_pieces: int) -> List["LineSegment"]:
        return [self]


@dataclass(frozen=True, eq=False)
class ArcSegment:
    """Circular arc from angle ``theta_start`` to ``theta_end``."""

    center: np.ndarray
    radius: float
    theta_start: float
    theta_end: float

    def __call__(self, t) -> np.ndarray:
        theta = self.theta_start + np.asarray(t, dtype=float) * (self.theta_end - self.theta_start)
        center = np.asarray(self.center, dtype=float)
        return center + self.radius * np.stack([np.cos(theta), np.sin(theta)], axis=-1)

    def split(self, num_pieces: int) -> List["ArcSegment"]:
        """Splits the arc into ``num_pieces`` arcs of equal angle."""
        thetas = np.linspace(self.theta_start, self.theta_end, num_pieces + 1)
        return [
            ArcSegment(self.center, self.radius, float(a), float(b))
            for a, b in zip(thetas[:-1], thetas[1:])
        ]


class PiecewiseCurve:
    """
    Closed curve made of segments joined end to end.

    Attributes:
        segments (List): Segments in traversal order.
    """

    def __init__(self, segments: Sequence):
        if len(segments) == 0:
            raise ValueError("A piecewise curve needs at least one segment.")
        self.segments: List = list(segments)

    @property
    def num_segments(self) -> int:
        return len(self.segments)

    @property
    def stop_pts(self) -> np.ndarray:
        return np.arange(self.num_segments + 1, dtype=float)

    def _locate(self, s):
        s = np.asarray(s, dtype=float)
        flat = s.ravel()
        segment_ids = np.clip(np.floor(flat).astype(int), 0, self.num_segments - 1)
        return s.shape, flat - segment_ids, segment_ids

    def __call__(self, s) -> np.ndarray:
        """Evaluates the curve; the result has shape ``s.shape + (2,)``."""
        shape, t, segment_ids = self._locate(s)
        points = np.empty((t.size, 2))
        for k, segment in enumerate(self.segments):
            mask = segment_ids == k
            if np.any(mask):
                points[mask] = segment(t[mask])
        return points.reshape(shape + (2,))

    def refine(self, num_pieces: int) -> "PiecewiseCurve":
        """
        Same curve with every arc split into ``num_pieces`` arcs.

        Straight segments are kept whole, since splitting them adds no
        information to a sub-triangulation.
        """
        return PiecewiseCurve(
            [piece for segment in self.segments for piece in segment.split(num_pieces)]
        )

    def vertices(self) -> np.ndarray:
        """Break points of the curve, shape (num_segments, 2)."""
        return self(self.stop_pts[:-1])

    def sample(self, points_per_segment: int = 8) -> np.ndarray:
        """Points along the curve for plotting, without repeating the start."""
        s = np.concatenate(
            [k + np.linspace(0.0, 1.0, points_per_segment, endpoint=False)
             for k in range(self.num_segments)]
        )
        return self(s)


@dataclass(frozen=True)
class Circle:
    """
    Circular object embedded in a background mesh.

    The computational domain is the region outside the circle.

    Attributes:
        radius (float): Radius of the circle.
        x0 (float): x-coordinate of the center.
        y0 (float): y-coordinate of the center.
    """

    radius: float
    x0: float = 0.0
    y0: float = 0.0

    @property
    def center(self) -> np.ndarray:
        return np.array([self.x0, self.y0])

    def contains(self, x, y) -> np.ndarray:
        """True for points strictly inside the circle."""
        x = np.asarray(x, dtype=float)
        y = np.asarray(y, dtype=float)
        return (x - self.x0) ** 2 + (y - self.y0) ** 2 < self.radius**2

    def angle(self, point) -> float:
        return float(np.arctan2(point[1] - self.y0, point[0] - self.x0))

    def segment_crossings(self, p0, p1, tol: float = 1e-12) -> np.ndarray:
        """
        Parameters t in (tol, 1 - tol) where ``p0 + t (p1 - p0)`` meets the circle.
        """
        p0 = np.asarray(p0, dtype=float)
        d = np.asarray(p1, dtype=float) - p0
        m = p0 - self.center
        a = d @ d
        b = 2.0 * (m @ d)
        c = m @ m - self.radius**2
        disc = b * b - 4.0 * a * c
        if a == 0.0 or disc <= 0.0:
            return np.array([])
        sqrt_disc = np.sqrt(disc)
        roots = np.array([(-b - sqrt_disc) / (2.0 * a), (-b + sqrt_disc) / (2.0 * a)])
        return roots[(roots > tol) & (roots < 1.0 - tol)]

    def boundary_arc(self, start, end) -> ArcSegment:
        """
        Arc from ``start`` to ``end`` traversed clockwise around the center.

        Walking a cut cell boundary counterclockwise keeps the domain on the
        left, so along the object it must turn clockwise.
        """
        theta_start = self.angle(start)
        delta = (theta_start - self.angle(end)) % (2.0 * np.pi)
        return ArcSegment(self.center, self.radius, theta_start, theta_start - delta)
