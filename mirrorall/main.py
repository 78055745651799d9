"""Main entry point for mirrorall."""

import argparse
import logging
import os
from pathlib import Path

from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.prompt import Prompt

from .config import MAX_CONCURRENCY, MirrorSettings, load_config, settings_from_config
from .crawler.github_client import RepositoryLister
from .crawler.repo_manager import RepoMirror
from .errors import AuthError, ListingError
from .pipeline.coordinator import RunCoordinator
from .pipeline.scheduler import MirrorScheduler

console = Console()

SECRET_ENV_VAR = "MIRRORALL_SECRET"


def _concurrency(value: str) -> int:
    number = int(value)
    if not 0 <= number <= MAX_CONCURRENCY:
        raise argparse.ArgumentTypeError(
            f"must be between 0 and {MAX_CONCURRENCY} (0 = unlimited)"
        )
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mirrorall",
        description="Mirror every repository of a GitHub user or organisation "
        "into local bare repositories",
    )
    parser.add_argument("--user", "-u", help="Account name used to authenticate")
    parser.add_argument(
        "--password", "-p",
        help=f"Password or token (default: ${SECRET_ENV_VAR}, then prompt)",
    )
    parser.add_argument(
        "--org", "-o",
        help="Organisation to mirror (default: repositories owned by the user)",
    )
    parser.add_argument(
        "--output-dir", "-d",
        type=Path,
        help="Directory holding the mirrors (default: ./YYYY-MM-DD)",
    )
    parser.add_argument(
        "--max-concurrency", "-j",
        type=_concurrency,
        help="Maximum parallel git operations, 0 for unlimited (default: 4)",
    )
    parser.add_argument("--config", "-c", type=Path, help="Optional YAML config file")
    parser.add_argument("--api-url", help="REST API base URL")
    parser.add_argument("--ssh-host", help="Host used in git@host:owner/name.git URLs")
    parser.add_argument(
        "--git-timeout",
        type=float,
        help="Seconds before a single git invocation is abandoned",
    )
    parser.add_argument(
        "--list",
        action="store_true",
        help="Only list repositories (don't mirror)",
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Exit with status 1 if any repository failed to mirror",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    return parser


def resolve_settings(args: argparse.Namespace, config: dict) -> MirrorSettings:
    """Merge config file values, environment and CLI flags into settings."""
    secret = (
        args.password
        or os.environ.get(SECRET_ENV_VAR)
        or (config.get("github") or {}).get("token")
    )
    if not secret:
        secret = Prompt.ask("Password or token", password=True, console=console)

    overrides = {
        "identity": args.user,
        "secret": secret,
        "organisation": args.org,
        "api_url": args.api_url,
        "ssh_host": args.ssh_host,
        "output_dir": args.output_dir,
        "max_concurrency": args.max_concurrency,
        "git_timeout": args.git_timeout,
    }
    return settings_from_config(config, overrides)


def run(settings: MirrorSettings, list_only: bool = False, strict: bool = False) -> int:
    """Run the mirror pipeline for *settings* and return an exit status.

    Individual repository failures only affect the status when *strict* is set.
    """
    output_dir = settings.output_dir.expanduser().resolve()

    with RepositoryLister(
        api_url=settings.api_url,
        identity=settings.identity,
        secret=settings.secret.get_secret_value(),
        organisation=settings.organisation,
        page_size=settings.page_size,
    ) as lister:
        coordinator = RunCoordinator(
            lister=lister,
            mirror=RepoMirror(
                base_path=output_dir,
                clone_url_template=settings.clone_url_template,
                host=settings.ssh_host,
                timeout=settings.git_timeout,
            ),
            scheduler=MirrorScheduler(max_concurrency=settings.max_concurrency),
            console=console,
        )

        try:
            if list_only:
                coordinator.list_only()
                return 0
            summary = coordinator.run()
        except AuthError as e:
            console.print(f"[red]Error:[/red] {escape(str(e))}; check user and password")
            return 1
        except ListingError as e:
            console.print(f"[red]Error:[/red] {escape(str(e))}")
            return 1

    return 1 if strict and summary.failed else 0


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config: dict = {}
    if args.config:
        try:
            config = load_config(args.config)
        except (OSError, ValueError) as e:
            console.print(f"[red]Error:[/red] {escape(str(e))}")
            return 2

    try:
        settings = resolve_settings(args, config)
    except ValidationError as e:
        console.print(f"[red]Invalid settings:[/red]\n{escape(str(e))}")
        return 2

    return run(settings, list_only=args.list, strict=args.strict)


if __name__ == "__main__":
    raise SystemExit(main())
