"""
Shape Annealing
===============

Approximate any target image with a stack of translucent rectangles or
triangles. Shapes are proposed one at a time and kept or discarded by
simulated annealing:

- **Serial** cost evaluation (default, fully deterministic for a seed)
- **Parallel** cost evaluation on a thread pool (same decisions, slower)
- **Sampled** cost estimates for a speed / accuracy trade-off
"""

__version__ = "0.3.0"

from shape_anneal.annealer import (
    AnnealingScheduler,
    AnnealResult,
    acceptance_probability,
    anneal,
    iteration_count,
)
from shape_anneal.config import AnnealConfig
from shape_anneal.cost import CostEvaluator, ParallelCostEvaluator, make_cost_evaluator
from shape_anneal.image_io import load_image, make_comparison_grid, save_image
from shape_anneal.renderer import composite, render
from shape_anneal.shapes import Rectangle, ShapeFactory, Triangle

__all__ = [
    "AnnealConfig",
    "AnnealResult",
    "AnnealingScheduler",
    "CostEvaluator",
    "ParallelCostEvaluator",
    "Rectangle",
    "ShapeFactory",
    "Triangle",
    "acceptance_probability",
    "anneal",
    "composite",
    "iteration_count",
    "load_image",
    "make_comparison_grid",
    "make_cost_evaluator",
    "render",
    "save_image",
]
