"""Simulated annealing over a growing stack of translucent shapes.

Every iteration proposes one shape (brand new, or a mutation of a shape
already on the canvas), paints it on top of the committed canvas, scores
the result and applies the Metropolis rule.  The temperature is cooled
geometrically and the run stops once it drops below ``final_temp``.
"""

from __future__ import annotations

import logging
import math
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

import numpy as np

from shape_anneal.config import AnnealConfig
from shape_anneal.cost import CostEvaluationStrategy, make_cost_evaluator
from shape_anneal.image_io import save_gif
from shape_anneal.renderer import blank_canvas, composite, render
from shape_anneal.shapes import Shape, ShapeFactory

logger = logging.getLogger(__name__)

# (iteration_index, temperature, current_cost), once per completed iteration
ProgressCallback = Callable[[int, float, float], None]


class Phase(Enum):
    PROPOSING = "proposing"
    EVALUATING = "evaluating"
    DECIDING = "deciding"
    COOLING = "cooling"
    TERMINATED = "terminated"


@dataclass
class CanvasState:
    """Committed shapes, their cached composite and its cost."""

    shapes: list[Shape]
    buffer: np.ndarray
    cost: float
    background: tuple[int, int, int] = (0, 0, 0)

    def rerender(self) -> np.ndarray:
        """Rebuild the composite from the shape list."""
        h, w = self.buffer.shape[:2]
        return render(self.shapes, w, h, self.background)


@dataclass
class AnnealingState:
    temperature: float
    alpha: float
    iteration: int = 0
    accepted: int = 0

    def cool(self) -> None:
        self.temperature *= self.alpha
        self.iteration += 1


@dataclass(frozen=True)
class StepResult:
    move: str  # "add" | "mutate"
    shape: Shape
    candidate_cost: float
    delta: float
    accepted: bool


@dataclass
class AnnealResult:
    buffer: np.ndarray
    shapes: list[Shape]
    cost: float
    iterations: int
    accepted: int
    decisions: list[bool] = field(default_factory=list)
    elapsed: float = 0.0


def acceptance_probability(delta: float, temperature: float) -> float:
    """Metropolis acceptance probability for a cost change *delta*."""
    if delta <= 0:
        return 1.0
    return math.exp(-delta / temperature)


def iteration_count(
    alpha: float, initial_temp: float = 1000.0, final_temp: float = 0.001,
) -> int:
    """Number of geometric cooling steps until the temperature drops below *final_temp*."""
    return math.ceil(math.log(final_temp / initial_temp) / math.log(alpha))


class AnnealingScheduler:
    """Owns the canvas, the temperature and the random stream for one run.

    Args:
        target:    (H, W, 3) uint8 image to approximate.
        cfg:       Run configuration; defaults to :class:`AnnealConfig`.
        evaluator: Cost strategy to use instead of the one ``cfg`` selects.
                   The caller keeps ownership and closes it.
        rng:       Random generator; defaults to one seeded from ``cfg.seed``.
                   Shape proposals, cost sampling and acceptance draws all
                   come from this single stream, so an injected evaluator
                   should sample from the same generator.
    """

    def __init__(
        self,
        target: np.ndarray,
        cfg: AnnealConfig | None = None,
        evaluator: CostEvaluationStrategy | None = None,
        rng: np.random.Generator | None = None,
    ) -> None:
        self.cfg = cfg or AnnealConfig()
        self.target = np.array(target, dtype=np.uint8)
        self.target.setflags(write=False)
        h, w = self.target.shape[:2]

        self.rng = rng if rng is not None else np.random.default_rng(self.cfg.seed)
        self.factory = ShapeFactory(
            w, h, self.cfg.shape_kind, self.rng, self.cfg.alpha_range,
        )
        self._owns_evaluator = evaluator is None
        self.evaluator: CostEvaluationStrategy = (
            evaluator if evaluator is not None
            else make_cost_evaluator(self.target, self.cfg, self.rng)
        )

        buffer = blank_canvas(w, h, self.cfg.background)
        self.canvas = CanvasState(
            shapes=[],
            buffer=buffer,
            cost=self.evaluator.cost(buffer),
            background=self.cfg.background,
        )
        self.state = AnnealingState(
            temperature=self.cfg.initial_temp, alpha=self.cfg.alpha,
        )
        self.phase = Phase.PROPOSING

    # -- one iteration -------------------------------------------------

    def _propose(self) -> tuple[str, Shape]:
        # A mutant is painted on top; its parent stays in the committed list.
        shapes = self.canvas.shapes
        if shapes and self.rng.random() < self.cfg.mutate_probability:
            parent = shapes[int(self.rng.integers(0, len(shapes)))]
            return "mutate", self.factory.mutate(parent, self.cfg.mutation_intensity)
        return "add", self.factory.generate_random()

    def _accept(self, delta: float) -> bool:
        if delta <= 0:
            return True
        return self.rng.random() < acceptance_probability(delta, self.state.temperature)

    def step(self) -> StepResult:
        """Run a single propose → evaluate → decide → cool cycle."""
        if self.phase is Phase.TERMINATED:
            msg = "Annealing has already terminated"
            raise RuntimeError(msg)

        self.phase = Phase.PROPOSING
        move, shape = self._propose()
        candidate = composite(self.canvas.buffer, shape)

        self.phase = Phase.EVALUATING
        candidate_cost = self.evaluator.cost(candidate)
        delta = candidate_cost - self.canvas.cost

        self.phase = Phase.DECIDING
        accepted = self._accept(delta)
        if accepted:
            self.canvas.shapes.append(shape)
            self.canvas.buffer = candidate
            self.canvas.cost = candidate_cost
            self.state.accepted += 1

        self.phase = Phase.COOLING
        self.state.cool()

        if self.state.temperature < self.cfg.final_temp:
            self.phase = Phase.TERMINATED
        else:
            self.phase = Phase.PROPOSING

        return StepResult(move, shape, candidate_cost, delta, accepted)

    # -- full run ------------------------------------------------------

    def run(self, progress: ProgressCallback | None = None) -> AnnealResult:
        """Step until the temperature threshold is crossed."""
        h, w = self.target.shape[:2]
        expected = iteration_count(
            self.cfg.alpha, self.cfg.initial_temp, self.cfg.final_temp,
        )
        log_every = max(1, expected // 20)

        logger.info(
            "Annealing start | %dx%d %ss  temp=%.1f  alpha=%.6f  iterations=%s  evaluator=%s",
            w, h, self.cfg.shape_kind, self.state.temperature, self.cfg.alpha,
            f"{expected:,}", type(self.evaluator).__name__,
        )

        decisions: list[bool] = []
        t0 = time.perf_counter()

        while self.phase is not Phase.TERMINATED:
            result = self.step()
            decisions.append(result.accepted)

            if progress is not None:
                progress(self.state.iteration - 1, self.state.temperature, self.canvas.cost)

            if self.state.iteration % log_every == 0:
                pct = self.state.iteration / expected * 100
                logger.info(
                    "  %5.1f%%  cost=%s  temp=%.2e  accepted=%s  (%.0f s)",
                    min(pct, 100.0), f"{self.canvas.cost:,.0f}",
                    self.state.temperature, f"{self.state.accepted:,}",
                    time.perf_counter() - t0,
                )

        elapsed = time.perf_counter() - t0
        logger.info(
            "Annealing done  | cost=%s  shapes=%s  accepted=%s/%s  (%.1f s)",
            f"{self.canvas.cost:,.0f}", f"{len(self.canvas.shapes):,}",
            f"{self.state.accepted:,}", f"{self.state.iteration:,}", elapsed,
        )

        return AnnealResult(
            buffer=self.canvas.buffer.copy(),
            shapes=list(self.canvas.shapes),
            cost=self.canvas.cost,
            iterations=self.state.iteration,
            accepted=self.state.accepted,
            decisions=decisions,
            elapsed=elapsed,
        )

    def close(self) -> None:
        if self._owns_evaluator:
            self.evaluator.close()

    def __enter__(self) -> AnnealingScheduler:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()


def anneal(
    target: np.ndarray,
    cfg: AnnealConfig | None = None,
    progress: ProgressCallback | None = None,
    gif_path: Path | None = None,
) -> AnnealResult:
    """Approximate *target* with shapes and return the final canvas.

    Args:
        target:   (H, W, 3) uint8 image.
        cfg:      Run configuration.
        progress: Observer called once per iteration with
                  ``(iteration_index, temperature, current_cost)``.
        gif_path: If given, save an animated GIF showing convergence.

    Returns:
        The final committed canvas, its shapes and run statistics.
    """
    cfg = cfg or AnnealConfig()
    frames: list[np.ndarray] = []

    with AnnealingScheduler(target, cfg) as scheduler:
        observer = progress
        if gif_path is not None and cfg.gif_frames > 0:
            expected = iteration_count(cfg.alpha, cfg.initial_temp, cfg.final_temp)
            frame_interval = max(1, expected // cfg.gif_frames)
            frames.append(scheduler.canvas.buffer.copy())

            def _capture_frame(index: int, temperature: float, cost: float) -> None:
                if (index + 1) % frame_interval == 0:
                    frames.append(scheduler.canvas.buffer.copy())
                if progress is not None:
                    progress(index, temperature, cost)

            observer = _capture_frame

        result = scheduler.run(observer)

    if gif_path is not None and frames:
        frames.append(result.buffer)
        save_gif(frames, gif_path, pixel_upscale=cfg.pixel_upscale)
        logger.info("Annealing animation saved: %s (%d frames)", gif_path, len(frames))

    return result
