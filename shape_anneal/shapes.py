"""Shape variant (rectangle | triangle) and the random factory that proposes them.

Coordinates are integer pixel positions ``(x, y)`` and always lie inside
``[0, width) x [0, height)``.  Colours are ``(r, g, b)`` in ``[0, 255]``;
opacity is a float in ``[0, 1]``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar

import numpy as np

from shape_anneal.config import SHAPE_KINDS

Point = tuple[int, int]
Color = tuple[int, int, int]


@dataclass(frozen=True)
class Rectangle:
    """Axis-aligned box spanned (inclusively) by two opposite corners."""

    p0: Point
    p1: Point
    color: Color
    alpha: float

    kind: ClassVar[str] = "rectangle"

    @property
    def points(self) -> tuple[Point, Point]:
        return (self.p0, self.p1)

    @property
    def bbox(self) -> tuple[int, int, int, int]:
        """Inclusive (x0, y0, x1, y1)."""
        (ax, ay), (bx, by) = self.p0, self.p1
        return min(ax, bx), min(ay, by), max(ax, bx), max(ay, by)


@dataclass(frozen=True)
class Triangle:
    p0: Point
    p1: Point
    p2: Point
    color: Color
    alpha: float

    kind: ClassVar[str] = "triangle"

    @property
    def points(self) -> tuple[Point, Point, Point]:
        return (self.p0, self.p1, self.p2)

    @property
    def bbox(self) -> tuple[int, int, int, int]:
        """Inclusive (x0, y0, x1, y1)."""
        xs = [p[0] for p in self.points]
        ys = [p[1] for p in self.points]
        return min(xs), min(ys), max(xs), max(ys)


Shape = Rectangle | Triangle


class ShapeFactory:
    """Draws random shapes and local mutations of existing ones.

    The factory's only side effect is consuming *rng*, which the caller
    shares with the rest of the run so that a seed fixes everything.

    Args:
        width:       Canvas width in pixels.
        height:      Canvas height in pixels.
        kind:        ``"rectangle"`` or ``"triangle"``.
        rng:         Shared NumPy random generator.
        alpha_range: Inclusive opacity range for generated shapes.
    """

    def __init__(
        self,
        width: int,
        height: int,
        kind: str,
        rng: np.random.Generator,
        alpha_range: tuple[float, float] = (0.0, 1.0),
    ) -> None:
        if width < 1 or height < 1:
            msg = f"Canvas must be at least 1x1, got {width}x{height}"
            raise ValueError(msg)
        if kind not in SHAPE_KINDS:
            msg = f"Unknown shape kind '{kind}'. Available: {', '.join(SHAPE_KINDS)}"
            raise ValueError(msg)
        self.width = width
        self.height = height
        self.kind = kind
        self.rng = rng
        self.alpha_range = alpha_range

    def _random_points(self, n: int) -> tuple[Point, ...]:
        xs = self.rng.integers(0, self.width, size=n)
        ys = self.rng.integers(0, self.height, size=n)
        return tuple((int(x), int(y)) for x, y in zip(xs, ys, strict=True))

    def _random_color(self) -> Color:
        r, g, b = self.rng.integers(0, 256, size=3)
        return int(r), int(g), int(b)

    def _random_alpha(self) -> float:
        lo, hi = self.alpha_range
        return float(self.rng.uniform(lo, hi))

    def generate_random(self) -> Shape:
        """Uniformly random shape of the configured kind."""
        if self.kind == "triangle":
            p0, p1, p2 = self._random_points(3)
            return Triangle(p0, p1, p2, self._random_color(), self._random_alpha())
        p0, p1 = self._random_points(2)
        return Rectangle(p0, p1, self._random_color(), self._random_alpha())

    def mutate(self, shape: Shape, intensity: float) -> Shape:
        """Perturb the geometry, the colour, or both, then clip back into range.

        *intensity* is the largest move as a fraction of the canvas size
        (for vertices), of 255 (for colour channels) and of 1 (for opacity).
        Every bound is at least one unit so a mutation can always move.

        Returns a new shape; *shape* is never replaced.  The scheduler
        paints an accepted mutant on top of the canvas and keeps the
        original in the committed list, so that list only ever grows.
        """
        if not isinstance(shape, (Rectangle, Triangle)):
            msg = f"Unsupported shape type: {type(shape).__name__}"
            raise TypeError(msg)
        if not 0.0 < intensity <= 1.0:
            msg = f"intensity must lie in (0, 1], got {intensity}"
            raise ValueError(msg)

        points = shape.points
        color = shape.color
        alpha = shape.alpha

        # 0 = geometry, 1 = colour, 2 = both
        what = int(self.rng.integers(0, 3))

        if what in (0, 2):
            dx = max(1, round(intensity * self.width))
            dy = max(1, round(intensity * self.height))
            n = len(points)
            jx = self.rng.integers(-dx, dx + 1, size=n)
            jy = self.rng.integers(-dy, dy + 1, size=n)
            points = tuple(
                (
                    int(np.clip(x + ox, 0, self.width - 1)),
                    int(np.clip(y + oy, 0, self.height - 1)),
                )
                for (x, y), ox, oy in zip(points, jx, jy, strict=True)
            )

        if what in (1, 2):
            dc = max(1, round(intensity * 255))
            jc = self.rng.integers(-dc, dc + 1, size=3)
            r, g, b = (int(np.clip(c + o, 0, 255)) for c, o in zip(color, jc, strict=True))
            color = (r, g, b)
            lo, hi = self.alpha_range
            alpha = float(np.clip(alpha + self.rng.uniform(-intensity, intensity), lo, hi))

        if isinstance(shape, Rectangle):
            p0, p1 = points
            return Rectangle(p0, p1, color, alpha)
        p0, p1, p2 = points
        return Triangle(p0, p1, p2, color, alpha)
