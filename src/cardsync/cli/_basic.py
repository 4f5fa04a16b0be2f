"""Content, history and revert commands."""

from __future__ import annotations

import json
import os

import click

from ..objects import FileSnapshot
from ._helpers import (
    main,
    _branch_option,
    _message_option,
    _remote_errors,
    _repo_option,
    _require_repo,
    _settings,
    _status,
    _strip_colon,
)


def _parse_commit_spec(spec: str) -> tuple[str, str]:
    """Split ``LOCAL[:PATH]`` into (local path, repo path)."""
    local, sep, path = spec.rpartition(":")
    if not sep or not local:
        return spec, os.path.basename(spec)
    return local, path


# ---------------------------------------------------------------------------
# cat
# ---------------------------------------------------------------------------

@main.command()
@_repo_option
@click.argument("path")
@click.option("--ref", default="main", show_default=True,
              help="Branch name or commit hash to read from.")
@click.pass_context
def cat(ctx, path, ref):
    """Print the contents of PATH."""
    repo = _require_repo(ctx)
    path = _strip_colon(path)
    with _remote_errors():
        found = repo.read(path, ref)
    if found is None:
        raise click.ClickException(f"File not found: {path}@{ref}")
    click.echo(found.data, nl=False)


# ---------------------------------------------------------------------------
# sync / commit
# ---------------------------------------------------------------------------

@main.command()
@_repo_option
@click.argument("local", type=click.Path(exists=True, dir_okay=False))
@click.argument("path", required=False, default=None)
@_branch_option
@_message_option
@click.pass_context
def sync(ctx, local, path, branch, message):
    """Create or update one file from LOCAL (at PATH, default its basename)."""
    repo = _require_repo(ctx)
    path = _strip_colon(path) if path else os.path.basename(local)
    snap = FileSnapshot.from_local(path, local)
    with _remote_errors():
        result = repo.sync_file(branch, snap.path, snap.content, message)
    _status(ctx, f"Wrote :{snap.path}")
    click.echo(result.commit_sha)


@main.command()
@_repo_option
@click.argument("specs", nargs=-1, required=True)
@_branch_option
@_message_option
@click.option("--expect", "expected_head", default=None,
              help="Refuse to commit unless the branch is at this hash.")
@click.pass_context
def commit(ctx, specs, branch, message, expected_head):
    """Commit several local files as one commit.

    \b
    Each SPEC is LOCAL or LOCAL:PATH:
        cardsync commit card.json:character.json card.png -m "update"
    """
    repo = _require_repo(ctx)
    snapshots = []
    for spec in specs:
        local, path = _parse_commit_spec(spec)
        if not os.path.isfile(local):
            raise click.ClickException(f"Not a file: {local}")
        snapshots.append(FileSnapshot.from_local(_strip_colon(path), local))
    with _remote_errors():
        result = repo.commit_files(branch, snapshots, message, expected_head=expected_head)
    _status(ctx, f"Committed {len(snapshots)} file(s) to {branch}")
    click.echo(result.sha)


# ---------------------------------------------------------------------------
# log / patch
# ---------------------------------------------------------------------------

@main.command()
@_repo_option
@_branch_option
@click.option("--path", "at_path", default=None, help="Only commits touching this file.")
@click.option("-n", "--limit", type=int, default=None, help="Maximum number of commits.")
@click.option("--format", "fmt", type=click.Choice(["text", "json"]), default="text",
              show_default=True, help="Output format.")
@click.pass_context
def log(ctx, branch, at_path, limit, fmt):
    """Show commit history, newest first."""
    repo = _require_repo(ctx)
    limit = limit or _settings(ctx).history_limit
    at_path = _strip_colon(at_path) if at_path else None
    with _remote_errors():
        entries = repo.log(branch, at_path, limit=limit)
    if fmt == "json":
        click.echo(json.dumps([e.as_dict() for e in entries], indent=2))
    else:
        for entry in entries:
            click.echo(f"{entry.sha[:7]}  {entry.date}  {entry.author}  {entry.message}")


@main.command()
@_repo_option
@click.argument("sha")
@click.argument("path")
@click.pass_context
def patch(ctx, sha, path):
    """Print the patch of PATH in commit SHA."""
    repo = _require_repo(ctx)
    with _remote_errors():
        text = repo.patch(sha, _strip_colon(path))
    if text is None:
        click.echo("No textual change to this file in this commit.")
    else:
        click.echo(text)


# ---------------------------------------------------------------------------
# revert
# ---------------------------------------------------------------------------

@main.command()
@_repo_option
@click.argument("sha")
@_branch_option
@click.pass_context
def revert(ctx, sha, branch):
    """Restore the tracked files as of SHA in a new commit."""
    repo = _require_repo(ctx)
    with _remote_errors():
        result = repo.revert(branch, sha)
    for path, data in result.contents.items():
        _status(ctx, f"{'Restored' if data is not None else 'Kept'} :{path}")
    click.echo(result.commit.sha)
