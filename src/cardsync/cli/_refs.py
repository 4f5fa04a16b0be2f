"""Branch subcommands."""

from __future__ import annotations

import click

from ._helpers import (
    main,
    _branch_option,
    _remote_errors,
    _repo_option,
    _require_repo,
    _status,
)


@main.command()
@_repo_option
@click.pass_context
def branches(ctx):
    """List all branches."""
    repo = _require_repo(ctx)
    with _remote_errors():
        names = repo.branches()
    for name in names:
        click.echo(name)


@main.command()
@_repo_option
@click.argument("name")
@click.option("--from", "base", default=None,
              help="Branch to start from (default: the repository's default branch).")
@click.option("--seed", default=None,
              help="README text used when the repository is still empty.")
@click.pass_context
def branch(ctx, name, base, seed):
    """Create branch NAME.

    In an empty repository the branch is created by committing a README.
    """
    repo = _require_repo(ctx)
    with _remote_errors():
        result = repo.ensure_branch(name, base, seed)
    if result.bootstrapped:
        _status(ctx, f"Initialized empty repository on {name}")
    click.echo(result.sha)


@main.command()
@_repo_option
@_branch_option
@click.pass_context
def head(ctx, branch):
    """Print the head commit hash of a branch."""
    repo = _require_repo(ctx)
    with _remote_errors():
        click.echo(repo.head(branch))
