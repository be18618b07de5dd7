"""SQS Operator CLI (sqsctl).

Usage:
    sqsctl reconcile specs/orders.yaml            # Apply via the SQS API
    sqsctl reconcile --target terraform --out tf  # Export Terraform instead
    sqsctl reconcile --observe                    # Report changes only
    sqsctl normalize policy.json                  # Print a normalized policy
"""

from __future__ import annotations

import dataclasses
import json
import logging
from pathlib import Path
from typing import TextIO

import click

from .config import Config, ConfigurationError, ReconciliationMode, RenderTargetKind
from .diff_normalizer import normalize_policy, parse_policy
from .jsonutils import JSONTransformError
from .main import main as run_main
from .main import setup_logging

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


@click.group()
@click.version_option(version="0.1.0", prog_name="sqsctl")
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default="INFO",
    show_default=True,
    help="Log level for JSON logs on stdout",
)
def cli(log_level: str) -> None:
    """SQS Operator CLI (sqsctl).

    Reconciles SQS queues declared in YAML specs, either directly
    against the SQS API or as Terraform output.
    """
    setup_logging(getattr(logging, log_level.upper()))


@cli.command()
@click.argument(
    "spec_files",
    nargs=-1,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option(
    "--target",
    "target",
    type=click.Choice([t.value for t in RenderTargetKind]),
    default=None,
    help="Render target (default: RENDER_TARGET or aws)",
)
@click.option(
    "--out",
    "out_dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Terraform output directory (default: TERRAFORM_OUTPUT_DIR)",
)
@click.option("--observe", is_flag=True, help="Report changes without rendering them")
def reconcile(
    spec_files: tuple[Path, ...],
    target: str | None,
    out_dir: Path | None,
    observe: bool,
) -> None:
    """Reconcile queues from SPEC_FILES (default: every spec in SPECS_DIR)."""
    try:
        config = Config.from_env()
        overrides: dict[str, object] = {}
        if target:
            overrides["target"] = RenderTargetKind(target)
        if out_dir is not None:
            overrides["terraform_output_dir"] = out_dir
        if observe:
            overrides["mode"] = ReconciliationMode.OBSERVE
        if overrides:
            config = dataclasses.replace(config, **overrides)
    except ConfigurationError as e:
        raise click.ClickException(str(e)) from e

    exit_code = run_main(list(spec_files), config=config)
    if exit_code != 0:
        raise click.exceptions.Exit(exit_code)


@cli.command()
@click.argument("policy_file", type=click.File("r", encoding="utf-8"))
def normalize(policy_file: TextIO) -> None:
    """Print POLICY_FILE with service principals in canonical order."""
    try:
        document = parse_policy(policy_file.read(), policy_file.name)
        normalize_policy(document)
    except JSONTransformError as e:
        raise click.ClickException(str(e)) from e
    click.echo(json.dumps(document, indent=2))


if __name__ == "__main__":
    cli()
