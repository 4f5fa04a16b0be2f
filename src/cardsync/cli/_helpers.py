"""Shared helpers, option decorators, and the main CLI group."""

from __future__ import annotations

import logging
from contextlib import contextmanager

import click

from ..config import Settings
from ..exceptions import CardSyncError, InvalidRepositoryAddress, PartialPublishFailure
from ..github import GitHubStore
from ..repo import CardRepo
from ..session import SessionStore


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _strip_colon(raw: str) -> str:
    """Strip an optional leading ':' from a repo-side path."""
    return raw[1:] if raw.startswith(":") else raw


def _status(ctx, msg):
    """Emit a status message to stderr when verbose mode (-v) is on."""
    if ctx.obj.get("verbose"):
        click.echo(msg, err=True)


def _store_repo(ctx, param, value):
    """Click callback: store --repo value in the context."""
    ctx.ensure_object(dict)
    if value is not None:
        ctx.obj["repo_url"] = value
    return value


def _repo_option(f):
    """Shared --repo/-r option decorator for all commands."""
    return click.option(
        "--repo", "-r", envvar="CARDSYNC_REPO",
        help="Repository URL (or set CARDSYNC_REPO).",
        expose_value=False, callback=_store_repo, is_eager=True,
    )(f)


def _branch_option(f):
    return click.option("-b", "--branch", default="main", show_default=True,
                        help="Branch to operate on.")(f)


def _message_option(f):
    return click.option("-m", "--message", required=True, help="Commit message.")(f)


def _settings(ctx) -> Settings:
    if "settings" not in ctx.obj:
        try:
            ctx.obj["settings"] = Settings.from_env()
        except ValueError as exc:
            raise click.ClickException(str(exc))
    return ctx.obj["settings"]


def _session_store(ctx) -> SessionStore:
    return SessionStore(_settings(ctx).session_path)


def _get_store(ctx):
    """The object store for this invocation (injected, or GitHub via token/session)."""
    if ctx.obj.get("store") is None:
        settings = _settings(ctx)
        token = ctx.obj.get("token")
        if not token:
            session = _session_store(ctx).load()
            if session is None:
                raise click.ClickException(
                    "Not logged in. Use 'cardsync login --token ...' or set CARDSYNC_TOKEN."
                )
            token = session.token
        ctx.obj["store"] = GitHubStore(token, base_url=settings.api_url, timeout=settings.timeout)
    return ctx.obj["store"]


def _require_repo(ctx) -> CardRepo:
    """Open the --repo repository, raising a clear error if missing or malformed."""
    url = ctx.obj.get("repo_url")
    if not url:
        raise click.ClickException(
            "No repository specified. Use --repo or set CARDSYNC_REPO."
        )
    try:
        return CardRepo.open(url, _get_store(ctx))
    except InvalidRepositoryAddress as exc:
        raise click.ClickException(str(exc))


@contextmanager
def _remote_errors():
    """Turn library errors into click errors."""
    try:
        yield
    except PartialPublishFailure as exc:
        lines = [str(exc)]
        for path, err in sorted(exc.failures.items()):
            lines.append(f"  {path}: {err}")
        raise click.ClickException("\n".join(lines))
    except (CardSyncError, ValueError) as exc:
        raise click.ClickException(str(exc))


# ---------------------------------------------------------------------------
# Main group
# ---------------------------------------------------------------------------

@click.group()
@click.option("--repo", "-r", envvar="CARDSYNC_REPO",
              help="Repository URL (or set CARDSYNC_REPO).",
              expose_value=False, callback=_store_repo, is_eager=True)
@click.option("--token", envvar="CARDSYNC_TOKEN", default=None,
              help="API token (or set CARDSYNC_TOKEN); defaults to the saved session.")
@click.option("-v", "--verbose", is_flag=True, help="Verbose output on stderr.")
@click.pass_context
def main(ctx, token, verbose):
    """cardsync: version character cards in a hosted git repository.

    \b
    Quick start:
      cardsync login --token $GITHUB_TOKEN
      cardsync -r https://github.com/me/cards branch main
      cardsync -r https://github.com/me/cards commit card.json:character.json card.png -m "update"
      cardsync -r https://github.com/me/cards log

    \b
    Repo paths may be prefixed with ':' (e.g. :character.json).
    Set CARDSYNC_REPO to avoid passing --repo on every call.
    """
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    if token:
        ctx.obj["token"] = token
    if verbose:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
        logger = logging.getLogger("cardsync")
        if not logger.handlers:
            logger.addHandler(handler)
        logger.setLevel(logging.DEBUG)
