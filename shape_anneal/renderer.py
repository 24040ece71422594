"""Alpha-blended rasterisation of shapes onto RGB pixel buffers.

Buffers are ``(H, W, 3)`` uint8 arrays.  Every function here is pure:
the input buffer is never written to, so a candidate can be rendered
from the committed canvas and thrown away if it is rejected.
"""

from __future__ import annotations

import numpy as np

from shape_anneal.shapes import Point, Rectangle, Shape, Triangle


def _edge(a: Point, b: Point, xs: np.ndarray, ys: np.ndarray) -> np.ndarray:
    """Signed doubled area of (a, b, p) for every grid point p."""
    return (b[0] - a[0]) * (ys - a[1]) - (b[1] - a[1]) * (xs - a[0])


def coverage_mask(
    shape: Shape, width: int, height: int,
) -> tuple[slice, slice, np.ndarray]:
    """Bounding-box slices of *shape* and a boolean mask of covered pixels.

    Rectangles cover their whole (inclusive) bounding box.  Triangles use
    an edge-function sign test with inclusive edges, so a degenerate
    triangle still covers the pixels on its segment.

    Returns:
        ``(rows, cols, mask)`` where ``mask`` has the bounding-box shape.
    """
    x0, y0, x1, y1 = shape.bbox
    if x0 < 0 or y0 < 0 or x1 >= width or y1 >= height:
        msg = f"{shape.kind} {shape.points} lies outside a {width}x{height} canvas"
        raise ValueError(msg)

    rows = slice(y0, y1 + 1)
    cols = slice(x0, x1 + 1)

    if isinstance(shape, Rectangle):
        mask = np.ones((y1 - y0 + 1, x1 - x0 + 1), dtype=bool)
    elif isinstance(shape, Triangle):
        gy, gx = np.mgrid[y0 : y1 + 1, x0 : x1 + 1]
        p0, p1, p2 = shape.points
        e0 = _edge(p0, p1, gx, gy)
        e1 = _edge(p1, p2, gx, gy)
        e2 = _edge(p2, p0, gx, gy)
        inside_cw = (e0 >= 0) & (e1 >= 0) & (e2 >= 0)
        inside_ccw = (e0 <= 0) & (e1 <= 0) & (e2 <= 0)
        mask = inside_cw | inside_ccw
    else:
        msg = f"Unsupported shape type: {type(shape).__name__}"
        raise TypeError(msg)

    return rows, cols, mask


def composite(buffer: np.ndarray, shape: Shape) -> np.ndarray:
    """Paint *shape* over *buffer* and return the result as a new array.

    Inside the covered region each channel becomes
    ``color * alpha + buffer * (1 - alpha)``, rounded to the nearest
    integer; everything else is copied unchanged.
    """
    h, w = buffer.shape[:2]
    rows, cols, mask = coverage_mask(shape, w, h)

    out = buffer.copy()
    region = out[rows, cols]
    a = shape.alpha
    color = np.asarray(shape.color, dtype=np.float64)
    blended = color * a + region[mask].astype(np.float64) * (1.0 - a)
    region[mask] = np.clip(np.rint(blended), 0, 255).astype(np.uint8)
    return out


def blank_canvas(
    width: int, height: int, background: tuple[int, int, int] = (0, 0, 0),
) -> np.ndarray:
    """Solid (H, W, 3) uint8 canvas."""
    canvas = np.empty((height, width, 3), dtype=np.uint8)
    canvas[:] = background
    return canvas


def render(
    shapes: list[Shape],
    width: int,
    height: int,
    background: tuple[int, int, int] = (0, 0, 0),
) -> np.ndarray:
    """Composite *shapes* in order over a blank canvas."""
    buffer = blank_canvas(width, height, background)
    for shape in shapes:
        buffer = composite(buffer, shape)
    return buffer
