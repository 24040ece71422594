"""Dissimilarity between a candidate buffer and the target image.

Two interchangeable strategies share one interface (``cost``, ``close``
and the context-manager protocol):

- :class:`CostEvaluator` – serial, full-pixel or sampled.
- :class:`ParallelCostEvaluator` – wraps a serial evaluator and spreads
  the same sum over a thread pool.

In ``rgb`` space the squared differences are summed as int64, so both
strategies return bit-identical costs for the same buffer and sample.
The parallel path is slower than the serial one for typical canvas sizes
because every candidate pays the thread dispatch round-trip; it exists
for benchmarking and parity, not speed.
"""

from __future__ import annotations

import logging
import os
from concurrent.futures import ThreadPoolExecutor

import numpy as np

from shape_anneal.color_utils import rgb_to_lab
from shape_anneal.config import AnnealConfig

logger = logging.getLogger(__name__)

PixelSelection = slice | np.ndarray


class CostEvaluator:
    """Sum of squared per-channel differences against a fixed target.

    Args:
        target:        (H, W, 3) uint8 reference image.
        rng:           Shared NumPy random generator (used for sampling only).
        sample:        Pixel subset size; ``None`` (or a size covering the
                       whole image) evaluates every pixel.
        sample_policy: ``"fresh"`` draws a new subset on every evaluation,
                       ``"fixed"`` draws one subset and keeps it for the run.
        color_space:   ``"rgb"`` or ``"lab"``.
    """

    def __init__(
        self,
        target: np.ndarray,
        rng: np.random.Generator,
        sample: int | None = None,
        sample_policy: str = "fresh",
        color_space: str = "rgb",
    ) -> None:
        self.height, self.width = target.shape[:2]
        self.total_pixels = self.height * self.width
        self.rng = rng
        self.color_space = color_space
        self.sample_policy = sample_policy
        self.sample = sample if sample is not None and sample < self.total_pixels else None
        self._fixed_sample: np.ndarray | None = None

        flat = target.reshape(-1, 3)
        if color_space == "lab":
            self._target = rgb_to_lab(flat)
        else:
            self._target = flat.astype(np.int64)
        self._target.setflags(write=False)

    @property
    def sampled(self) -> bool:
        return self.sample is not None

    def draw_sample(self) -> np.ndarray | None:
        """Flat pixel indices for the next evaluation, or ``None`` in full mode."""
        if self.sample is None:
            return None
        if self.sample_policy == "fixed":
            if self._fixed_sample is None:
                self._fixed_sample = self._choose()
            return self._fixed_sample
        return self._choose()

    def _choose(self) -> np.ndarray:
        idx = self.rng.choice(self.total_pixels, size=self.sample, replace=False)
        return np.sort(idx)

    def partial_cost(self, buffer: np.ndarray, pixels: PixelSelection) -> float | int:
        """Unscaled squared error over the flat pixel positions in *pixels*."""
        candidate = buffer.reshape(-1, 3)[pixels]
        target = self._target[pixels]
        if self.color_space == "lab":
            diff = rgb_to_lab(candidate) - target
            return float(np.sum(diff * diff))
        diff = candidate.astype(np.int64) - target
        return int(np.sum(diff * diff))

    def scale(self, partial: float | int) -> float:
        """Turn a (possibly sampled) sum into a full-image cost estimate."""
        if self.sample is None:
            return float(partial)
        return partial * self.total_pixels / self.sample

    def cost(self, buffer: np.ndarray) -> float:
        indices = self.draw_sample()
        pixels = slice(None) if indices is None else indices
        return self.scale(self.partial_cost(buffer, pixels))

    def close(self) -> None:
        pass

    def __enter__(self) -> CostEvaluator:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()


class ParallelCostEvaluator:
    """Thread-pool decorator over a :class:`CostEvaluator`.

    The coordinating thread draws the sample through the wrapped
    evaluator (so the random stream matches the serial path), splits the
    pixel domain into disjoint chunks, and blocks until every worker has
    returned its partial sum.  Workers only read the candidate buffer and
    the target.
    """

    def __init__(self, inner: CostEvaluator, workers: int | None = None) -> None:
        self.inner = inner
        self.workers = workers or os.cpu_count() or 1
        self._pool = ThreadPoolExecutor(
            max_workers=self.workers, thread_name_prefix="cost",
        )
        logger.debug("Parallel cost evaluation on %d worker threads", self.workers)

    def _chunks(self, indices: np.ndarray | None) -> list[PixelSelection]:
        if indices is None:
            w = self.inner.width
            row_groups = np.array_split(np.arange(self.inner.height), self.workers)
            return [
                slice(int(rows[0]) * w, (int(rows[-1]) + 1) * w)
                for rows in row_groups
                if len(rows)
            ]
        return [chunk for chunk in np.array_split(indices, self.workers) if len(chunk)]

    def cost(self, buffer: np.ndarray) -> float:
        indices = self.inner.draw_sample()
        futures = [
            self._pool.submit(self.inner.partial_cost, buffer, chunk)
            for chunk in self._chunks(indices)
        ]
        total = sum(f.result() for f in futures)
        return self.inner.scale(total)

    def close(self) -> None:
        self._pool.shutdown(wait=True)

    def __enter__(self) -> ParallelCostEvaluator:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()


CostEvaluationStrategy = CostEvaluator | ParallelCostEvaluator


def make_cost_evaluator(
    target: np.ndarray,
    cfg: AnnealConfig,
    rng: np.random.Generator,
) -> CostEvaluationStrategy:
    """Build the serial or parallel evaluator selected by *cfg*."""
    evaluator = CostEvaluator(
        target,
        rng,
        sample=cfg.sample,
        sample_policy=cfg.sample_policy,
        color_space=cfg.color_space,
    )
    if cfg.multithreading:
        return ParallelCostEvaluator(evaluator, workers=cfg.workers)
    return evaluator
