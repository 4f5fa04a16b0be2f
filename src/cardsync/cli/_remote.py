"""Session, release and contribution commands."""

from __future__ import annotations

import click

from ..contrib import create_repository
from ..exchange import ExchangeClient
from ..github import GitHubStore
from ..repo import CardRepo
from ..session import Session
from ..workflows import pull_card
from ._helpers import (
    main,
    _branch_option,
    _get_store,
    _remote_errors,
    _repo_option,
    _require_repo,
    _session_store,
    _settings,
    _status,
)


# ---------------------------------------------------------------------------
# session
# ---------------------------------------------------------------------------

@main.command()
@click.option("--token", "login_token", prompt=True, hide_input=True,
              help="Personal access token to save.")
@click.pass_context
def login(ctx, login_token):
    """Verify a token and save it as the current session."""
    settings = _settings(ctx)
    store = ctx.obj.get("store") or GitHubStore(
        login_token, base_url=settings.api_url, timeout=settings.timeout)
    with _remote_errors():
        user = store.get_user()
    session = Session(login=user["login"], token=login_token, name=user.get("name"))
    _session_store(ctx).save(session)
    click.echo(f"Logged in as {session.login}")


@main.command()
@click.pass_context
def logout(ctx):
    """Forget the saved session."""
    _session_store(ctx).clear()
    click.echo("Logged out")


@main.command()
@click.pass_context
def whoami(ctx):
    """Print the login of the saved session."""
    session = _session_store(ctx).load()
    if session is None:
        raise click.ClickException("Not logged in")
    click.echo(session.login)


# ---------------------------------------------------------------------------
# repositories
# ---------------------------------------------------------------------------

@main.command("create-repo")
@click.argument("name")
@click.option("--public", is_flag=True, default=False, help="Create a public repository.")
@click.pass_context
def create_repo(ctx, name, public):
    """Create repository NAME for the logged-in user and print its clone URL."""
    with _remote_errors():
        info = create_repository(_get_store(ctx), name, private=not public)
    click.echo(info.clone_url)


@main.command()
@_repo_option
@click.pass_context
def fork(ctx):
    """Fork the repository (the host completes it in the background)."""
    repo = _require_repo(ctx)
    with _remote_errors():
        forked = repo.fork()
    click.echo(forked.ref.full_name)


@main.command()
@_repo_option
@click.argument("head")
@click.argument("base")
@click.option("--title", required=True, help="Pull request title.")
@click.option("--body", default="", help="Pull request description.")
@click.pass_context
def pr(ctx, head, base, title, body):
    """Open a pull request from HEAD (user:branch) into BASE."""
    repo = _require_repo(ctx)
    with _remote_errors():
        pull = repo.open_pull_request(head, base, title, body)
    click.echo(pull.html_url or f"#{pull.number}")


# ---------------------------------------------------------------------------
# releases
# ---------------------------------------------------------------------------

@main.command()
@_repo_option
@click.argument("version")
@click.option("--title", required=True, help="Release title.")
@click.option("--notes", default="", help="Release notes.")
@_branch_option
@click.pass_context
def release(ctx, version, title, notes, branch):
    """Create release VERSION and attach the card files from the branch."""
    repo = _require_repo(ctx)
    with _remote_errors():
        report = repo.publish_release(version, title, notes, branch)
    for asset in report.uploaded:
        _status(ctx, f"Attached {asset.name}")
    for path in report.skipped:
        click.echo(f"Skipped {path}: not on {branch}", err=True)
    click.echo(report.release.html_url or report.release.tag)


@main.command()
@_repo_option
@click.pass_context
def releases(ctx):
    """List releases."""
    repo = _require_repo(ctx)
    with _remote_errors():
        found = repo.releases()
    for rel in found:
        names = ", ".join(a.name for a in rel.assets)
        click.echo(f"{rel.tag}  {rel.title}  [{names}]")


# ---------------------------------------------------------------------------
# pull into the host application
# ---------------------------------------------------------------------------

def _parse_header(raw: str) -> tuple[str, str]:
    name, sep, value = raw.partition(":")
    if not sep or not name.strip():
        raise click.BadParameter(f"Expected 'Name: value', got {raw!r}")
    return name.strip(), value.strip()


@main.command()
@_repo_option
@click.argument("avatar")
@click.option("--ref", default="main", show_default=True,
              help="Branch or commit hash whose character.json to use.")
@click.option("--exchange-url", envvar="CARDSYNC_EXCHANGE_URL", default=None,
              help="Base URL of the host application.")
@click.option("-H", "--header", "headers", multiple=True,
              help="Header forwarded to the host, e.g. 'X-CSRF-Token: ...'.")
@click.pass_context
def pull(ctx, avatar, ref, exchange_url, headers):
    """Inject character.json from the repository into local card AVATAR."""
    repo: CardRepo = _require_repo(ctx)
    forwarded = dict(_parse_header(h) for h in headers)
    exchange = ctx.obj.get("exchange") or ExchangeClient(
        exchange_url or _settings(ctx).exchange_url, forwarded, timeout=_settings(ctx).timeout)
    with _remote_errors():
        pull_card(repo, ref, exchange, avatar)
    click.echo(f"Updated {avatar} from {ref}")
