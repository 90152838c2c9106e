"""
Click command definitions for the reve CLI.

This module contains the Click command group and the create, edit, remix and
estimate commands.
"""

import time
from collections.abc import Callable
from pathlib import Path
from typing import Any

import click

from reve import (
    AspectRatio,
    CancelToken,
    Config,
    CreateParams,
    EditParams,
    ImageData,
    ModelVersion,
    OutputFormat,
    Postprocess,
    RawResult,
    RemixParams,
    Result,
    ReveClient,
    __version__,
    detect_format,
    estimate_create,
    estimate_edit,
    estimate_remix,
    remove_background,
    upscale,
)
from reve.cli import progress
from reve.cli.handlers import (
    install_sigint_handler,
    reset_cancellation,
    restore_sigint_handler,
    run_with_error_handling,
)
from reve.cli.utils import default_output_path
from reve.logging_config import configure_logging, get_verbosity_from_env

_FORMAT_CHOICES = {
    "png": OutputFormat.PNG,
    "jpeg": OutputFormat.JPEG,
    "webp": OutputFormat.WEBP,
    "json": OutputFormat.JSON,
}


@click.group(
    help=f"""Create, edit and remix images with the Reve API.

\b
Version: {__version__}
Set REVE_API_KEY (or pass --api-key) before running a command.
"""
)
@click.version_option(version=__version__, package_name="reve")
@click.pass_context
def cli(ctx: click.Context) -> None:
    ctx.color = True


def _common_options(fn: Callable[..., Any]) -> Callable[..., Any]:
    """Options shared by create, edit and remix."""
    options = [
        click.option(
            "--aspect-ratio",
            "-a",
            type=click.Choice([r.value for r in AspectRatio]),
            default=None,
            help="Output aspect ratio (default chosen by the API).",
        ),
        click.option(
            "--version",
            "model_version",
            type=click.Choice([v.value for v in ModelVersion]),
            default=None,
            help="Model version (default: latest).",
        ),
        click.option(
            "--scaling",
            type=float,
            default=0,
            help="Test-time scaling factor 1-15 (higher costs more credits).",
        ),
        click.option(
            "--upscale",
            "upscale_factor",
            type=click.IntRange(2, 4),
            default=None,
            help="Upscale the output by 2, 3 or 4.",
        ),
        click.option(
            "--remove-background", is_flag=True, help="Remove the background of the output."
        ),
        click.option(
            "--format",
            "output_format",
            type=click.Choice(list(_FORMAT_CHOICES), case_sensitive=False),
            default=None,
            help="Response format (default: from --out extension, else png).",
        ),
        click.option("--out", "-o", type=click.Path(path_type=Path), help="Output file path."),
        click.option(
            "--api-key",
            envvar="REVE_API_KEY",
            help="Reve API key (overrides REVE_API_KEY environment variable).",
        ),
        click.option(
            "--timeout",
            type=float,
            default=None,
            help="Overall time budget in seconds, including retries.",
        ),
        click.option(
            "--quiet",
            "-q",
            is_flag=True,
            help="Minimize progress messages; only print result path or errors.",
        ),
        click.option(
            "--verbose",
            "-v",
            "verbose_count",
            count=True,
            help="Increase verbosity: -v also show prompts, -vv show request/retry detail.",
        ),
        click.option(
            "--debug",
            is_flag=True,
            help="Trace each HTTP request and response on stderr.",
        ),
    ]
    for option in reversed(options):
        fn = option(fn)
    return fn


def _postprocessing(upscale_factor: int | None, remove_bg: bool) -> list[Postprocess]:
    steps = []
    if upscale_factor:
        steps.append(upscale(upscale_factor))
    if remove_bg:
        steps.append(remove_background())
    return steps


def _resolve_format(output_format: str | None, out: Path | None) -> OutputFormat:
    if output_format:
        return _FORMAT_CHOICES[output_format.lower()]
    if out is not None:
        return detect_format(out)
    return OutputFormat.PNG


def _build_client(api_key: str | None, debug: bool) -> ReveClient:
    config = Config.from_env()
    if api_key is not None:
        config.set_api_key(api_key)
    if debug:
        config.debug = True
    return ReveClient(config=config)


def _run_operation(
    operation: str,
    params: CreateParams | EditParams | RemixParams,
    *,
    output_format: str | None,
    out: Path | None,
    api_key: str | None,
    timeout: float | None,
    quiet: bool,
    verbose_count: int,
    debug: bool,
    reference_count: int = 0,
) -> None:
    """Shared body of create / edit / remix: call the API, save, report."""
    cancel = reset_cancellation(timeout)

    # Apply logging verbosity: CLI flags override REVE_VERBOSITY
    verbose_level = min(verbose_count, 2) if verbose_count > 0 else get_verbosity_from_env()
    configure_logging(verbose_level=verbose_level, quiet=quiet)

    def do_operation() -> None:
        fmt = _resolve_format(output_format, out)
        with _build_client(api_key, debug) as client:
            call = _select_call(client, operation, params, fmt, cancel)
            start = time.monotonic()
            if quiet:
                result = call()
            else:
                with progress.operation_progress(
                    operation,
                    version=str(params.version) or None,
                    reference_count=reference_count,
                ):
                    result = call()
            elapsed = time.monotonic() - start

        ext = fmt.extension
        out_path = out if out is not None else Path(default_output_path(operation, ext))
        result.save_to(out_path)

        if not quiet:
            progress.print_success_result(
                output_path=out_path,
                operation=operation,
                elapsed=elapsed,
                version=result.version,
                request_id=result.request_id,
                credits_used=result.credits_used,
                credits_remaining=result.credits_remaining,
                content_violation=result.content_violation,
            )
        # Print path to stdout for scriptability
        click.echo(str(out_path))

    old_sigint = install_sigint_handler()
    try:
        run_with_error_handling(do_operation, quiet=quiet)
    finally:
        restore_sigint_handler(old_sigint)


def _select_call(
    client: ReveClient,
    operation: str,
    params: Any,
    fmt: OutputFormat,
    cancel: CancelToken,
) -> Callable[[], Result | RawResult]:
    images = client.images
    if fmt == OutputFormat.JSON:
        json_calls = {"create": images.create, "edit": images.edit, "remix": images.remix}
        return lambda: json_calls[operation](params, cancel=cancel)
    raw_calls = {"create": images.create_raw, "edit": images.edit_raw, "remix": images.remix_raw}
    return lambda: raw_calls[operation](params, fmt, cancel=cancel)


@cli.command()
@click.option("--prompt", "-p", required=True, help="Text description of the image to create.")
@_common_options
def create(
    prompt: str,
    aspect_ratio: str | None,
    model_version: str | None,
    scaling: float,
    upscale_factor: int | None,
    remove_background: bool,
    output_format: str | None,
    out: Path | None,
    api_key: str | None,
    timeout: float | None,
    quiet: bool,
    verbose_count: int,
    debug: bool,
) -> None:
    """Create an image from a text prompt."""
    params = CreateParams(
        prompt=prompt,
        aspect_ratio=aspect_ratio or "",
        version=model_version or "",
        test_time_scaling=scaling,
        postprocessing=_postprocessing(upscale_factor, remove_background),
    )
    _run_operation(
        "create",
        params,
        output_format=output_format,
        out=out,
        api_key=api_key,
        timeout=timeout,
        quiet=quiet,
        verbose_count=verbose_count,
        debug=debug,
    )


@cli.command()
@click.option("--instruction", "-i", required=True, help="How to change the reference image.")
@click.option(
    "--reference",
    "-r",
    required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Path to the image to edit.",
)
@_common_options
def edit(
    instruction: str,
    reference: Path,
    aspect_ratio: str | None,
    model_version: str | None,
    scaling: float,
    upscale_factor: int | None,
    remove_background: bool,
    output_format: str | None,
    out: Path | None,
    api_key: str | None,
    timeout: float | None,
    quiet: bool,
    verbose_count: int,
    debug: bool,
) -> None:
    """Edit an image following a natural-language instruction."""
    params = EditParams(
        edit_instruction=instruction,
        reference_image=ImageData.from_file(reference),
        aspect_ratio=aspect_ratio or "",
        version=model_version or "",
        test_time_scaling=scaling,
        postprocessing=_postprocessing(upscale_factor, remove_background),
    )
    _run_operation(
        "edit",
        params,
        output_format=output_format,
        out=out,
        api_key=api_key,
        timeout=timeout,
        quiet=quiet,
        verbose_count=verbose_count,
        debug=debug,
        reference_count=1,
    )


@cli.command()
@click.option(
    "--prompt",
    "-p",
    required=True,
    help="Prompt; refer to references as <img>0</img>, <img>1</img>, ...",
)
@click.option(
    "--reference",
    "-r",
    "references",
    multiple=True,
    required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Reference image path (repeat up to 6 times).",
)
@_common_options
def remix(
    prompt: str,
    references: tuple[Path, ...],
    aspect_ratio: str | None,
    model_version: str | None,
    scaling: float,
    upscale_factor: int | None,
    remove_background: bool,
    output_format: str | None,
    out: Path | None,
    api_key: str | None,
    timeout: float | None,
    quiet: bool,
    verbose_count: int,
    debug: bool,
) -> None:
    """Combine reference images under a prompt."""
    params = RemixParams(
        prompt=prompt,
        reference_images=[ImageData.from_file(p) for p in references],
        aspect_ratio=aspect_ratio or "",
        version=model_version or "",
        test_time_scaling=scaling,
        postprocessing=_postprocessing(upscale_factor, remove_background),
    )
    _run_operation(
        "remix",
        params,
        output_format=output_format,
        out=out,
        api_key=api_key,
        timeout=timeout,
        quiet=quiet,
        verbose_count=verbose_count,
        debug=debug,
        reference_count=len(references),
    )


@cli.command()
@click.argument("operation", type=click.Choice(["create", "edit", "remix"]))
@click.option("--fast", is_flag=True, help="Price the fast model variant (edit/remix).")
@click.option("--scaling", type=float, default=1, help="Test-time scaling factor.")
@click.option("--upscale", "upscale_factor", type=click.IntRange(2, 4), default=None)
@click.option("--remove-background", is_flag=True)
def estimate(
    operation: str,
    fast: bool,
    scaling: float,
    upscale_factor: int | None,
    remove_background: bool,
) -> None:
    """Estimate the credit cost of an operation without calling the API."""
    steps = _postprocessing(upscale_factor, remove_background)
    if operation == "create":
        cost = estimate_create(scaling, steps)
    elif operation == "edit":
        cost = estimate_edit(fast, scaling, steps)
    else:
        cost = estimate_remix(fast, scaling, steps)
    click.echo(str(cost.total_credits))
    progress.print_info(
        f"{operation}: base {cost.base_credits}, scaled {cost.scaled_credits}, "
        f"postprocessing {cost.postprocess_credits}"
    )


def main() -> None:
    """Entry point for the reve console script."""
    cli()


__all__ = ["cli", "main", "create", "edit", "remix", "estimate"]
