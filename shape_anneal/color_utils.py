"""Colour-space conversion and colour parsing."""

from __future__ import annotations

import numpy as np
from skimage.color import rgb2lab


def rgb_to_lab(rgb: np.ndarray) -> np.ndarray:
    """Convert uint8 RGB of shape (..., 3) → float64 CIELAB of the same shape."""
    flat = rgb.reshape(1, -1, 3).astype(np.float64) / 255.0
    return rgb2lab(flat).reshape(rgb.shape)


def hex_to_rgb(hex_str: str) -> tuple[int, int, int]:
    """Parse '#RRGGBB' (leading '#' optional) to an (r, g, b) tuple."""
    h = hex_str.strip().lstrip("#")
    if len(h) != 6:
        msg = f"Expected a colour like '#RRGGBB', got '{hex_str}'"
        raise ValueError(msg)
    try:
        r, g, b = (int(h[i : i + 2], 16) for i in (0, 2, 4))
    except ValueError as exc:
        msg = f"Expected a colour like '#RRGGBB', got '{hex_str}'"
        raise ValueError(msg) from exc
    return r, g, b
