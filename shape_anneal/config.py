"""Centralised configuration via a frozen dataclass."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

SHAPE_KINDS = ("rectangle", "triangle")
SAMPLE_POLICIES = ("fresh", "fixed")
COLOR_SPACES = ("rgb", "lab")


@dataclass(frozen=True)
class AnnealConfig:
    """All tuneable parameters for an annealing run.

    Attributes:
        alpha:              Multiplicative cooling factor per iteration, in (0, 1).
        initial_temp:       Starting temperature.
        final_temp:         The run terminates once the temperature drops below this.
        shape_kind:         "rectangle" or "triangle", fixed for the whole run.
        sample:             Pixel subset size for sampled cost (None = every pixel).
        sample_policy:      "fresh" (redraw every evaluation) or "fixed" (once per run).
        multithreading:     Route cost evaluation through the thread-pool evaluator.
        workers:            Worker threads for the parallel evaluator (None = CPU count).
        color_space:        Cost metric - "rgb" or "lab" (perceptual).
        mutate_probability: Chance of mutating a committed shape instead of adding a new one.
        mutation_intensity: Fraction of the canvas / colour range a mutation may move.
        alpha_range:        Inclusive (lo, hi) range for shape opacity, within [0, 1].
        background:         RGB colour of the blank starting canvas.
        seed:               Random seed (None = non-deterministic).
        max_side:           Downscale the input so its longest side fits (None = as is).
        pixel_upscale:      Each pixel becomes n x n in the saved output.
        gif_frames:         Number of snapshot frames for the convergence GIF.
        input_dir:          Folder scanned by the batch command.
        output_dir:         Folder for batch results.
    """

    # Cooling schedule
    alpha: float = 0.999
    initial_temp: float = 1000.0
    final_temp: float = 0.001

    # Shapes
    shape_kind: str = "rectangle"  # "rectangle" | "triangle"
    mutate_probability: float = 0.5
    mutation_intensity: float = 0.1
    alpha_range: tuple[float, float] = (0.0, 1.0)
    background: tuple[int, int, int] = (0, 0, 0)

    # Cost evaluation
    sample: int | None = None
    sample_policy: str = "fresh"  # "fresh" | "fixed"
    color_space: str = "rgb"
    multithreading: bool = False
    workers: int | None = None

    seed: int | None = 42

    # Output
    max_side: int | None = None
    pixel_upscale: int = 1
    gif_frames: int = 60

    # Paths
    input_dir: Path = field(default_factory=lambda: Path("images"))
    output_dir: Path = field(default_factory=lambda: Path("output"))

    SUPPORTED_EXTENSIONS: frozenset[str] = frozenset(
        {".jpg", ".jpeg", ".png", ".bmp", ".tiff", ".tif", ".webp", ".jfif"}
    )

    def __post_init__(self) -> None:
        if not 0.0 < self.alpha < 1.0:
            msg = f"alpha must lie strictly between 0 and 1, got {self.alpha}"
            raise ValueError(msg)
        if not 0.0 < self.final_temp < self.initial_temp:
            msg = (
                f"Need 0 < final_temp < initial_temp, got "
                f"final_temp={self.final_temp}, initial_temp={self.initial_temp}"
            )
            raise ValueError(msg)
        if self.shape_kind not in SHAPE_KINDS:
            msg = f"Unknown shape kind '{self.shape_kind}'. Available: {', '.join(SHAPE_KINDS)}"
            raise ValueError(msg)
        if self.sample is not None and self.sample < 1:
            msg = f"sample must be a positive pixel count, got {self.sample}"
            raise ValueError(msg)
        if self.sample_policy not in SAMPLE_POLICIES:
            msg = (
                f"Unknown sample policy '{self.sample_policy}'. "
                f"Available: {', '.join(SAMPLE_POLICIES)}"
            )
            raise ValueError(msg)
        if self.color_space not in COLOR_SPACES:
            msg = (
                f"Unknown colour space '{self.color_space}'. "
                f"Available: {', '.join(COLOR_SPACES)}"
            )
            raise ValueError(msg)
        if self.workers is not None and self.workers < 1:
            msg = f"workers must be at least 1, got {self.workers}"
            raise ValueError(msg)
        if not 0.0 <= self.mutate_probability <= 1.0:
            msg = f"mutate_probability must lie in [0, 1], got {self.mutate_probability}"
            raise ValueError(msg)
        if not 0.0 < self.mutation_intensity <= 1.0:
            msg = f"mutation_intensity must lie in (0, 1], got {self.mutation_intensity}"
            raise ValueError(msg)
        lo, hi = self.alpha_range
        if not 0.0 <= lo <= hi <= 1.0:
            msg = f"alpha_range must satisfy 0 <= lo <= hi <= 1, got {self.alpha_range}"
            raise ValueError(msg)
        if len(self.background) != 3 or any(not 0 <= c <= 255 for c in self.background):
            msg = f"background must be an RGB triple in [0, 255], got {self.background}"
            raise ValueError(msg)
        if self.max_side is not None and self.max_side < 1:
            msg = f"max_side must be positive, got {self.max_side}"
            raise ValueError(msg)
        if self.pixel_upscale < 1:
            msg = f"pixel_upscale must be positive, got {self.pixel_upscale}"
            raise ValueError(msg)

    @property
    def triangle(self) -> bool:
        return self.shape_kind == "triangle"
