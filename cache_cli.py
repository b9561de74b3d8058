#!/usr/bin/env python3
"""
Story Cache CLI

Inspect the effective cache configuration and exercise a ContextCache with a
simulated request workload, reporting hit/miss/eviction statistics.
"""

import random
import sys
from pathlib import Path
from typing import List, Optional

import click
from rich import box
from rich.console import Console
from rich.table import Table

from logging_config import get_story_cache_logger, log_exception, log_startup_info
from monitoring.health import HealthChecker, cache_size_check
from monitoring.metrics import CacheMetrics
from story_context import StoryContext
from story_service import CachedStoryService
from utils.cache import CacheConfigError, ContextCache
from utils.config import Config

_GENRES = ["fantasy", "scifi", "horror", "mystery", "western"]
_TONES = ["adventurous", "suspenseful", "whimsical"]
_CHARACTERS = ["wizard", "detective", "astronaut", "knight"]
_SETTINGS = ["magical forest", "mansion", "derelict station", "frontier town"]


class SimulatedClock:
    """Millisecond clock advanced explicitly by the workload."""

    def __init__(self, start_ms: float = 0.0):
        self.now_ms = start_ms

    def __call__(self) -> float:
        return self.now_ms

    def advance(self, ms: float) -> None:
        self.now_ms += ms


def build_contexts(count: int, rng: random.Random) -> List[StoryContext]:
    """Return *count* distinct contexts with randomly chosen story attributes."""
    return [
        StoryContext(
            user_id=f"user-{i}",
            genre=rng.choice(_GENRES),
            tone=rng.choice(_TONES),
            character=rng.choice(_CHARACTERS),
            setting=rng.choice(_SETTINGS),
        )
        for i in range(count)
    ]


def _stub_segment(context: StoryContext) -> str:
    return f"A {context.tone} {context.genre} tale of a {context.character} in the {context.setting}."


def _stub_choices(context: StoryContext) -> List[str]:
    return [f"Follow the {context.character}'s instinct", f"Explore the {context.setting}", "Turn back"]


@click.group()
@click.option("--config", "config_path", type=click.Path(dir_okay=False, path_type=Path), default=None,
              help="JSON config file overlaying the defaults")
@click.option("--ttl-ms", type=float, default=None, help="Override cache.ttl_ms")
@click.option("--max-entries", type=int, default=None, help="Override cache.max_entries")
@click.option("-d", "--debug", is_flag=True, default=False, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, config_path: Optional[Path], ttl_ms: Optional[float], max_entries: Optional[int],
        debug: bool) -> None:
    """Story context cache tools."""
    try:
        config = Config.from_env(config_path)
    except ValueError as exc:
        raise click.ClickException(str(exc)) from exc
    if ttl_ms is not None:
        config.set("cache.ttl_ms", ttl_ms)
    if max_entries is not None:
        config.set("cache.max_entries", max_entries)
    if debug:
        config.set("logging.debug", True)
    ctx.obj = config


@cli.command("config")
@click.pass_obj
def show_config(config: Config) -> None:
    """Show the effective configuration."""
    console = Console()
    table = Table(title="Story Cache Configuration", box=box.ROUNDED, style="cyan")
    table.add_column("Key", style="bold yellow")
    table.add_column("Value", style="white")
    for section, values in config.get_all().items():
        if not isinstance(values, dict):
            table.add_row(section, str(values))
            continue
        for key, value in values.items():
            table.add_row(f"{section}.{key}", str(value))
    console.print(table)


@cli.command()
@click.option("--contexts", "context_count", type=click.IntRange(min=1), default=50, show_default=True,
              help="Number of distinct story contexts")
@click.option("--requests", "request_count", type=click.IntRange(min=1), default=1000, show_default=True,
              help="Number of simulated requests")
@click.option("--step-ms", type=click.FloatRange(min=0), default=10.0, show_default=True,
              help="Simulated time between requests")
@click.option("--seed", type=int, default=0, show_default=True, help="Random seed for the workload")
@click.option("--prometheus", is_flag=True, default=False, help="Also print metrics in Prometheus format")
@click.pass_obj
def simulate(config: Config, context_count: int, request_count: int, step_ms: float, seed: int,
             prometheus: bool) -> None:
    """Replay a random request workload through the cache."""
    console = Console()
    logger, error_logger = get_story_cache_logger(
        debug=config.get("logging.debug", False), file_output=config.get("logging.file_output", False)
    )
    log_startup_info(logger, "Story Cache Simulation")

    clock = SimulatedClock()
    metrics = CacheMetrics() if config.get("metrics.enabled", True) else None
    try:
        cache = ContextCache.from_config(config, clock=clock, metrics=metrics)
    except CacheConfigError as exc:
        log_exception(logger, error_logger, exc, "Invalid cache configuration")
        console.print(f"[bold red]Invalid cache configuration: {exc}[/bold red]")
        sys.exit(2)

    service = CachedStoryService(cache, _stub_segment, _stub_choices)
    rng = random.Random(seed)
    contexts = build_contexts(context_count, rng)

    for _ in range(request_count):
        context = rng.choice(contexts)
        service.get_segment(context)
        service.get_choices(context)
        clock.advance(step_ms)

    logger.info(f"Replayed {request_count} requests over {context_count} contexts")

    health = HealthChecker()
    health.register_component("context_cache", cache_size_check(cache))
    report = health.check_health()

    sizes = cache.size()
    table = Table(title="Cache Simulation", box=box.ROUNDED, style="cyan")
    table.add_column("Store", style="bold yellow")
    table.add_column("Entries", justify="right")
    if metrics is not None:
        for column in ("Hits", "Misses", "Evictions", "Expirations", "Hit ratio"):
            table.add_column(column, justify="right")
    stats = metrics.get_stats()["stores"] if metrics is not None else {}
    for store, count in sizes.items():
        row = [store, str(count)]
        if metrics is not None:
            counts = stats[store]
            row += [
                str(counts["hits"]),
                str(counts["misses"]),
                str(counts["evictions"]),
                str(counts["expirations"]),
                f"{metrics.hit_ratio(store):.1%}",
            ]
        table.add_row(*row)
    console.print(table)

    status = "[bold green]healthy[/bold green]" if report["healthy"] else "[bold red]unhealthy[/bold red]"
    console.print(f"Cache health: {status}")
    if prometheus and metrics is not None:
        click.echo(metrics.get_prometheus_format(), nl=False)


if __name__ == "__main__":
    cli()
