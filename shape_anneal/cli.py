"""Rich command-line interface powered by Typer."""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import NoReturn

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel

from shape_anneal.annealer import AnnealResult, anneal, iteration_count
from shape_anneal.color_utils import hex_to_rgb
from shape_anneal.config import AnnealConfig
from shape_anneal.image_io import load_image, make_comparison_grid, save_image

app = typer.Typer(
    name="shape-anneal",
    help="Approximate an image with translucent shapes via simulated annealing.",
    add_completion=False,
    rich_markup_mode="rich",
)
console = Console()
# stdout carries only the progress lines; log records go to stderr
log_console = Console(stderr=True)
logger = logging.getLogger("shape_anneal")


def _log_handler() -> RichHandler:
    return RichHandler(console=log_console, show_path=False, markup=True)


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[_log_handler()],
    )


def _fail(message: str) -> NoReturn:
    console.print(f"[bold red]Error:[/bold red] {escape(message)}")
    raise typer.Exit(1)


def _print_temperature(index: int, temperature: float, cost: float) -> None:
    typer.echo(f"temperature: {temperature}")


def _collect_images(folder: Path, extensions: frozenset[str]) -> list[Path]:
    if not folder.exists():
        return []
    return sorted(
        f for f in folder.iterdir()
        if f.is_file() and f.suffix.lower() in extensions
    )


def _make_config(**kwargs: object) -> AnnealConfig:
    background = kwargs.pop("background")
    try:
        return AnnealConfig(background=hex_to_rgb(str(background)), **kwargs)
    except ValueError as exc:
        _fail(str(exc))


def _anneal_file(
    img_path: Path,
    output: Path,
    cfg: AnnealConfig,
    progress: bool,
    gif: Path | None,
    comparison: Path | None,
) -> AnnealResult:
    """Load, anneal and save one image; raises OSError/ValueError from the codec."""
    target = load_image(img_path, cfg.max_side)
    h, w = target.shape[:2]
    logger.info("Target: %dx%d = %d pixels", w, h, w * h)

    for path in (output, gif, comparison):
        if path is not None:
            path.parent.mkdir(parents=True, exist_ok=True)

    result = anneal(
        target, cfg,
        progress=_print_temperature if progress else None,
        gif_path=gif,
    )

    save_image(result.buffer, output, cfg.pixel_upscale)
    if comparison is not None:
        make_comparison_grid(
            target, result.buffer, comparison, cfg.pixel_upscale,
            num_shapes=len(result.shapes),
        )
    return result


# Defaults come from AnnealConfig - single source of truth
_DEFAULTS = AnnealConfig()


# -- run command -------------------------------------------------------

@app.command()
def run(
    input_path: Path = typer.Option(
        ..., "--input", "-i", help="Source image (format inferred from extension)",
    ),
    output: Path = typer.Option(
        ..., "--output", "-o", help="Destination image (format inferred from extension)",
    ),
    alpha: float = typer.Option(
        _DEFAULTS.alpha, "--alpha", "-a", help="Cooling factor per iteration, in (0, 1)",
    ),
    triangle: bool = typer.Option(
        False, "--triangle", "-t", help="Draw triangles instead of rectangles",
    ),
    sample: int | None = typer.Option(
        _DEFAULTS.sample, "--sample", "-s",
        help="Estimate cost from this many random pixels (default: every pixel)",
    ),
    multithreading: bool = typer.Option(
        False, "--multithreading", "-m", help="Evaluate cost on a thread pool",
    ),
    workers: int | None = typer.Option(
        _DEFAULTS.workers, "--workers", help="Worker threads (default: CPU count)",
    ),
    sample_policy: str = typer.Option(
        _DEFAULTS.sample_policy, "--sample-policy",
        help="'fresh' (redraw every evaluation) or 'fixed' (once per run)",
    ),
    color_space: str = typer.Option(
        _DEFAULTS.color_space, "--color-space", help="'rgb' or 'lab'",
    ),
    mutate_prob: float = typer.Option(
        _DEFAULTS.mutate_probability, "--mutate-prob",
        help="Probability of mutating an existing shape instead of adding one",
    ),
    intensity: float = typer.Option(
        _DEFAULTS.mutation_intensity, "--intensity", help="Mutation intensity, in (0, 1]",
    ),
    background: str = typer.Option(
        "#000000", "--background", help="Starting canvas colour, e.g. '#FFFFFF'",
    ),
    seed: int | None = typer.Option(_DEFAULTS.seed, "--seed", help="Random seed"),
    max_side: int | None = typer.Option(
        _DEFAULTS.max_side, "--max-side",
        help="Downscale the input so its longest side fits (aspect ratio preserved)",
    ),
    upscale: int = typer.Option(
        _DEFAULTS.pixel_upscale, "--upscale", "-u", help="Pixel upscale factor for saved images",
    ),
    gif: Path | None = typer.Option(None, "--gif", help="Save a convergence GIF"),
    comparison: Path | None = typer.Option(
        None, "--comparison", help="Save a Target | Result comparison image",
    ),
    progress: bool = typer.Option(
        True, "--progress/--no-progress", help="Print the temperature every iteration",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """Approximate a single image."""
    _setup_logging(verbose)

    cfg = _make_config(
        alpha=alpha,
        shape_kind="triangle" if triangle else "rectangle",
        sample=sample,
        sample_policy=sample_policy,
        multithreading=multithreading,
        workers=workers,
        color_space=color_space,
        mutate_probability=mutate_prob,
        mutation_intensity=intensity,
        background=background,
        seed=seed,
        max_side=max_side,
        pixel_upscale=upscale,
    )

    try:
        result = _anneal_file(input_path, output, cfg, progress, gif, comparison)
    except (OSError, ValueError) as exc:
        _fail(str(exc))

    h, w = result.buffer.shape[:2]
    console.print(
        f"[green]✓[/green] Saved to {escape(str(output))}  "
        f"[dim]{w}x{h}  shapes={len(result.shapes)}  cost={result.cost:,.0f}"
        f"  time={result.elapsed:.1f}s[/dim]"
    )


# -- batch command -----------------------------------------------------

@app.command()
def batch(
    input_dir: Path = typer.Option(
        _DEFAULTS.input_dir, "--input-dir", "-i", help="Folder with source images",
    ),
    output_dir: Path = typer.Option(
        _DEFAULTS.output_dir, "--output-dir", "-o", help="Results folder",
    ),
    output_format: str = typer.Option("png", "--format", "-f", help="Output image format"),
    alpha: float = typer.Option(_DEFAULTS.alpha, "--alpha", "-a"),
    triangle: bool = typer.Option(False, "--triangle", "-t"),
    sample: int | None = typer.Option(_DEFAULTS.sample, "--sample", "-s"),
    multithreading: bool = typer.Option(False, "--multithreading", "-m"),
    workers: int | None = typer.Option(_DEFAULTS.workers, "--workers"),
    sample_policy: str = typer.Option(_DEFAULTS.sample_policy, "--sample-policy"),
    color_space: str = typer.Option(_DEFAULTS.color_space, "--color-space"),
    mutate_prob: float = typer.Option(_DEFAULTS.mutate_probability, "--mutate-prob"),
    intensity: float = typer.Option(_DEFAULTS.mutation_intensity, "--intensity"),
    background: str = typer.Option("#000000", "--background"),
    seed: int | None = typer.Option(_DEFAULTS.seed, "--seed"),
    max_side: int | None = typer.Option(_DEFAULTS.max_side, "--max-side"),
    upscale: int = typer.Option(_DEFAULTS.pixel_upscale, "--upscale", "-u"),
    gif: bool = typer.Option(False, "--gif/--no-gif", help="Save convergence GIFs"),
    comparison: bool = typer.Option(
        True, "--comparison/--no-comparison", help="Save comparison grids",
    ),
    progress: bool = typer.Option(False, "--progress/--no-progress"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """Process all images in INPUT_DIR and write results to OUTPUT_DIR."""
    _setup_logging(verbose)

    cfg = _make_config(
        alpha=alpha,
        shape_kind="triangle" if triangle else "rectangle",
        sample=sample,
        sample_policy=sample_policy,
        multithreading=multithreading,
        workers=workers,
        color_space=color_space,
        mutate_probability=mutate_prob,
        mutation_intensity=intensity,
        background=background,
        seed=seed,
        max_side=max_side,
        pixel_upscale=upscale,
        input_dir=input_dir,
        output_dir=output_dir,
    )

    images = _collect_images(input_dir, cfg.SUPPORTED_EXTENSIONS)
    if not images:
        console.print(f"\n[yellow]No images found in {escape(str(input_dir))}/[/yellow]")
        console.print("Place .jpg / .png / ... files there and re-run.\n")
        raise typer.Exit(0)

    output_dir.mkdir(parents=True, exist_ok=True)

    console.print(Panel.fit(
        f"[bold]SHAPE ANNEALING[/bold]\n"
        f"Shapes: {cfg.shape_kind}  |  Alpha: {cfg.alpha}  |  "
        f"Iterations: {iteration_count(cfg.alpha, cfg.initial_temp, cfg.final_temp):,}\n"
        f"Cost: {cfg.color_space}, {'sampled ' + str(cfg.sample) if cfg.sample else 'full'}"
        f"  |  Threads: {'on' if cfg.multithreading else 'off'}  |  Images: {len(images)}",
        border_style="cyan",
    ))

    failed = 0
    for idx, img_path in enumerate(images, 1):
        stem = img_path.stem
        console.rule(f"[bold cyan][{idx}/{len(images)}] {escape(img_path.name)}[/bold cyan]")
        t_total = time.perf_counter()

        out_path = output_dir / f"{stem}_shapes.{output_format}"
        try:
            result = _anneal_file(
                img_path,
                out_path,
                cfg,
                progress,
                output_dir / f"{stem}_annealing.gif" if gif else None,
                output_dir / f"{stem}_comparison.{output_format}" if comparison else None,
            )
        except (OSError, ValueError) as exc:
            logger.error("Skipping %s: %s", img_path.name, exc)
            failed += 1
            continue

        elapsed = time.perf_counter() - t_total
        console.print(
            f"  [green]✓[/green] {escape(out_path.name)}  "
            f"[dim]shapes={len(result.shapes)}  cost={result.cost:,.0f}"
            f"  time={elapsed:.1f}s[/dim]"
        )

    if failed:
        console.print(f"[bold red]{failed} of {len(images)} images failed[/bold red]")
        raise typer.Exit(1)

    console.print(Panel.fit(
        f"[bold green]ALL DONE[/bold green] - results in [bold]{escape(str(output_dir))}/[/bold]",
        border_style="green",
    ))


if __name__ == "__main__":
    app()
