"""Image loading, saving, comparison grids and convergence GIFs."""

from __future__ import annotations

from pathlib import Path

import numpy as np
from PIL import Image, ImageDraw, ImageFont


def compute_target_size(
    original_width: int,
    original_height: int,
    max_side: int,
) -> tuple[int, int]:
    """Compute downscaled (w, h) preserving aspect ratio.

    The longest side becomes *max_side*; the other is scaled
    proportionally (rounded to the nearest integer, minimum 1).
    """
    if original_width >= original_height:
        w = max_side
        h = max(1, round(original_height * max_side / original_width))
    else:
        h = max_side
        w = max(1, round(original_width * max_side / original_height))
    return w, h


def load_image(path: str | Path, max_side: int | None = None) -> np.ndarray:
    """Decode an image file to RGB, optionally shrinking it.

    Images whose longest side exceeds *max_side* are downscaled with
    aspect ratio preserved; smaller images are left alone.

    Returns:
        (H, W, 3) uint8 array.
    """
    img = Image.open(path).convert("RGB")
    if max_side is not None and max(img.width, img.height) > max_side:
        w, h = compute_target_size(img.width, img.height, max_side)
        img = img.resize((w, h), Image.LANCZOS)
    return np.array(img, dtype=np.uint8)


def _upscale(array: np.ndarray, pixel_upscale: int) -> Image.Image:
    img = Image.fromarray(array.astype(np.uint8))
    if pixel_upscale == 1:
        return img
    h, w = array.shape[:2]
    return img.resize((w * pixel_upscale, h * pixel_upscale), Image.NEAREST)


def save_image(
    array: np.ndarray,
    path: str | Path,
    pixel_upscale: int = 1,
) -> None:
    """Encode *array*; the format follows the file extension."""
    _upscale(array, pixel_upscale).save(path)


def save_gif(
    frames: list[np.ndarray],
    path: str | Path,
    pixel_upscale: int = 1,
    duration: int = 120,
) -> None:
    """Write *frames* as a looping animated GIF."""
    images = [_upscale(f, pixel_upscale) for f in frames]
    images[0].save(
        Path(path),
        save_all=True,
        append_images=images[1:],
        duration=duration,
        loop=0,
    )


def make_comparison_grid(
    target: np.ndarray,
    result: np.ndarray,
    output_path: str | Path,
    pixel_upscale: int = 1,
    num_shapes: int | None = None,
) -> None:
    """Create a 2-panel comparison: Target | Result."""
    th, tw = target.shape[:2]
    panel_w = tw * pixel_upscale
    panel_h = th * pixel_upscale
    label_height = 36

    panels = [_upscale(target, pixel_upscale), _upscale(result, pixel_upscale)]
    labels = [
        f"Target {tw}x{th}",
        "Result" if num_shapes is None else f"Result ({num_shapes} shapes)",
    ]

    gap = 8
    total_w = len(panels) * panel_w + (len(panels) - 1) * gap
    total_h = panel_h + label_height

    canvas = Image.new("RGB", (total_w, total_h), (30, 30, 30))
    draw = ImageDraw.Draw(canvas)

    try:
        font = ImageFont.truetype(
            "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf", 18,
        )
    except OSError:
        font = ImageFont.load_default()

    for i, (panel, label) in enumerate(zip(panels, labels, strict=False)):
        x = i * (panel_w + gap)
        canvas.paste(panel, (x, label_height))

        bbox = draw.textbbox((0, 0), label, font=font)
        text_w = bbox[2] - bbox[0]
        tx = x + (panel_w - text_w) // 2
        draw.text((tx, 6), label, fill=(220, 220, 220), font=font)

    canvas.save(output_path)
