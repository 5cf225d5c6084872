"""Command-line interface for pyshrink."""

import logging
from enum import Enum
from pathlib import Path

import typer
from tqdm.auto import tqdm

from pyshrink.config import BatchConfig, load_config
from pyshrink.errors import PyshrinkError
from pyshrink.io import build_jobs, discover_image_files, write_batch_report
from pyshrink.pool import BatchReport, run_batch
from pyshrink.transforms import get_transform
from pyshrink.utils.formatting import format_bytes


class CompressionType(str, Enum):
    """Values accepted by `compress --type`."""

    auto = "auto"
    png = "png"
    jpg = "jpg"
    jpeg = "jpeg"


app = typer.Typer(help="Batch image recompression and checksum mutation.")
logger = logging.getLogger(__name__)

directory_argument = typer.Argument(
    None,
    file_okay=False,
    dir_okay=True,
    help="Directory to process. Defaults to the current directory.",
)
workers_option = typer.Option(
    None, "-j", "--workers", help="Maximum number of concurrent workers (default 4)."
)
timeout_option = typer.Option(
    None, "--timeout", help="Seconds before a job is stopped and reported as failed (process executor only)."
)
executor_option = typer.Option(
    None, "--executor", help="Worker isolation: 'process' (default) or 'thread'."
)
no_recursive_option = typer.Option(
    False, "--no-recursive", help="Only process the top-level directory."
)
config_option = typer.Option(
    None,
    "-c",
    "--config",
    exists=True,
    dir_okay=False,
    help="YAML file with batch settings; command-line options take precedence.",
)
report_option = typer.Option(
    None, "--report", dir_okay=False, help="Write a YAML report of every job here."
)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "-v", "--verbose", help="Debug logging."),
) -> None:
    """pyshrink utility commands."""
    if not logging.getLogger().handlers:
        logging.basicConfig(
            level=logging.DEBUG if verbose else logging.INFO,
            format="%(levelname)s: %(message)s",
        )
    elif verbose:
        logging.getLogger("pyshrink").setLevel(logging.DEBUG)


def _resolve_config(config_path: Path | None, **overrides) -> BatchConfig:
    try:
        return load_config(config_path).merged(**overrides)
    except PyshrinkError as exc:
        typer.secho(f"Invalid configuration: {exc}", err=True, fg=typer.colors.RED)
        raise typer.Exit(code=1)


def _collect_files(directory: Path | None, recursive: bool) -> list[Path]:
    root = (directory or Path.cwd()).expanduser().resolve()
    try:
        files = discover_image_files(root, recursive=recursive)
    except FileNotFoundError as exc:
        typer.secho(f"Error: {exc}", err=True, fg=typer.colors.RED)
        raise typer.Exit(code=1)
    if not files:
        typer.secho(
            f"No image files found in {root}.", fg=typer.colors.YELLOW
        )
    return files


def _run(
    transform: str,
    files: list[Path],
    config: BatchConfig,
    report_path: Path | None,
    **payload,
) -> BatchReport:
    jobs = build_jobs(files, **payload)
    typer.echo(
        f"Found {len(jobs)} image files; running '{transform}' with "
        f"{config.capacity} {config.executor} workers"
    )

    with tqdm(total=len(jobs), desc=transform, unit="file", leave=False) as bar:
        report = run_batch(
            jobs,
            get_transform(transform),
            config.capacity,
            sink=tqdm.write,
            on_update=lambda completed, total: bar.update(1),
            job_timeout=config.job_timeout,
            executor=config.executor,
        )

    state = report.state
    colour = typer.colors.GREEN if state.failed_count == 0 else typer.colors.YELLOW
    typer.secho(
        f"Completed '{transform}' for {state.completed_count} files "
        f"({format_bytes(state.cumulative_original_bytes)} -> "
        f"{format_bytes(state.cumulative_transformed_bytes)}, "
        f"reduced {state.reduction})",
        fg=colour,
    )

    if report_path is not None:
        write_batch_report(
            report_path,
            state,
            report.results,
            extra={"transform": transform, "capacity": config.capacity},
        )
        typer.echo(f"Report written to {report_path}")
    return report


@app.command()
def compress(
    directory: Path | None = directory_argument,
    quality: int | None = typer.Option(
        None, "-q", "--quality", min=1, max=100, help="Encoder quality 1-100 (default 80)."
    ),
    compression_type: CompressionType | None = typer.Option(
        None,
        "-t",
        "--type",
        case_sensitive=False,
        help="Only recompress files of this format (default auto: every PNG and JPEG).",
    ),
    workers: int | None = workers_option,
    timeout: float | None = timeout_option,
    executor: str | None = executor_option,
    no_recursive: bool = no_recursive_option,
    config_path: Path | None = config_option,
    report_path: Path | None = report_option,
) -> None:
    """Recompress PNG and JPEG images in place when it makes them smaller."""
    config = _resolve_config(
        config_path,
        capacity=workers,
        job_timeout=timeout,
        executor=executor,
        quality=quality,
        compression_type=compression_type.value if compression_type else None,
        recursive=False if no_recursive else None,
    )
    files = _collect_files(directory, config.recursive)
    if not files:
        return
    logger.info(
        "Compressing with type %s and quality %d",
        config.compression_type,
        config.quality,
    )
    _run(
        "compress",
        files,
        config,
        report_path,
        quality=config.quality,
        compression_type=config.compression_type,
    )


@app.command()
def md5(
    directory: Path | None = directory_argument,
    workers: int | None = workers_option,
    timeout: float | None = timeout_option,
    executor: str | None = executor_option,
    no_recursive: bool = no_recursive_option,
    config_path: Path | None = config_option,
    report_path: Path | None = report_option,
) -> None:
    """Append random bytes to every image so its MD5 checksum changes."""
    config = _resolve_config(
        config_path,
        capacity=workers,
        job_timeout=timeout,
        executor=executor,
        recursive=False if no_recursive else None,
    )
    files = _collect_files(directory, config.recursive)
    if not files:
        return
    _run("md5", files, config, report_path)


@app.command("list")
def list_files(
    directory: Path | None = directory_argument,
    recursive: bool = typer.Option(
        True, "--recursive/--no-recursive", help="Descend into subdirectories."
    ),
) -> None:
    """List the image files a batch would process."""
    files = _collect_files(directory, recursive)
    for path in files:
        typer.echo(f"{path}\t{format_bytes(path.stat().st_size)}")


if __name__ == "__main__":
    app()
