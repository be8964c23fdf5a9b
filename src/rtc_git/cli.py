"""refer-to-child - Command Line Entry Point."""
from __future__ import annotations

import sys
from pathlib import Path

import click
from loguru import logger

from rtc_core.errors import RtcError
from rtc_core.protocol import DEFAULT_PARALLELISM, DEFAULT_PREFIX_LENGTH
from rtc_core.template import find_predecessor
from rtc_search.coordinator import SearchConfig, find_match
from rtc_search.evaluator import Match

from .repository import GitRepository, persist_match

ENVVAR_PREFIX = "REFER_TO_CHILD"


def configure_logging(verbose: bool) -> None:
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else "WARNING")


def refer_to_child(
    repo: GitRepository,
    parent_ref: str,
    child_ref: str,
    config: SearchConfig,
    dry_run: bool = False,
) -> Match:
    """Search for the self-referencing pair and, unless ``dry_run``, check it out."""
    parent_sha = repo.resolve(parent_ref)
    child_sha = repo.resolve(child_ref)
    parent_body = repo.fetch_object_body(parent_sha)
    child_body = repo.fetch_object_body(child_sha)

    if find_predecessor(child_body) != parent_sha:
        logger.warning(f"{child_sha} is not a child of {parent_sha}; rewriting its first parent anyway")

    match = find_match(parent_body, child_body, config)
    if not dry_run:
        persist_match(repo, match)
    return match


@click.command(
    help=(
        "Given commit CHILD and its parent PARENT, update HEAD to point to CHILD', "
        "which is the same as CHILD except that it has parent PARENT', which is the "
        "same as PARENT except that ${CHILD_SHA1} is replaced with a prefix of "
        "sha1(CHILD') wherever it occurs in PARENT's commit message."
    ),
    context_settings={"auto_envvar_prefix": ENVVAR_PREFIX},
)
@click.option("--parent", "parent_ref", required=True, help="Parent commit")
@click.option("--child", "child_ref", required=True, help="Child commit")
@click.option(
    "--prefix-length",
    type=click.IntRange(1, 40),
    default=DEFAULT_PREFIX_LENGTH,
    show_default=True,
    help="Length of the SHA-1 prefix that replaces ${CHILD_SHA1}",
)
@click.option(
    "--parallelism",
    type=click.IntRange(min=1),
    default=DEFAULT_PARALLELISM,
    show_default=True,
    help="Number of parallel searches to conduct",
)
@click.option("--dry-run", is_flag=True, help="Only search; do not write objects or move HEAD")
@click.option(
    "--extra-header",
    default="",
    help="Name of an extra header to add to the parent when the message alone is not enough",
)
@click.option("--timeout", type=click.FloatRange(min=0, min_open=True), default=None, help="Seconds allowed per search generation")
@click.option(
    "--repo",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=Path("."),
    show_default=True,
    help="Repository working directory",
)
@click.option("-v", "--verbose", is_flag=True, help="Debug logging on stderr")
def main(
    parent_ref: str,
    child_ref: str,
    prefix_length: int,
    parallelism: int,
    dry_run: bool,
    extra_header: str,
    timeout: float | None,
    repo: Path,
    verbose: bool,
) -> None:
    configure_logging(verbose)
    try:
        config = SearchConfig(
            prefix_length=prefix_length,
            parallelism=parallelism,
            extra_header=extra_header,
            timeout=timeout,
        )
        match = refer_to_child(GitRepository(repo), parent_ref, child_ref, config, dry_run=dry_run)
    except RtcError as e:
        # Fail closed with a single-line reason.
        click.echo(f"FATAL: {e}", err=True)
        raise SystemExit(1)

    click.echo(f"PASS: parent {match.parent_sha}")
    click.echo(f"PASS: child {match.child_sha}")
    if dry_run:
        click.echo("DRY RUN: no objects written, HEAD unchanged")


if __name__ == "__main__":
    main()
