"""CLI entry point for skillsync."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import cast

from skillsync import __version__
from skillsync.config import ConfigError, SyncOptions
from skillsync.engine import run
from skillsync.platforms import known_platforms
from skillsync.prompts import DefaultPrompter, InteractivePrompter, PromptCancelledError, Prompter
from skillsync.resolver import SyncAbortedError, UnresolvedConflictError


def _parse_targets(value: str) -> list[str]:
    targets = [t.strip() for t in value.split(",") if t.strip()]
    if not targets:
        raise argparse.ArgumentTypeError("expected a comma-separated list of assistants")
    return targets


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="skillsync",
        description="Keep SKILL.md files in sync across AI assistant folders",
    )
    _ = parser.add_argument(
        "-V", "--version", action="version", version=f"skillsync {__version__}"
    )
    _ = parser.add_argument(
        "-f",
        "--fail-on-conflict",
        action="store_true",
        dest="fail_on_conflict",
        help="Exit with an error instead of prompting when skills disagree",
    )
    _ = parser.add_argument(
        "-d",
        "--dry-run",
        action="store_true",
        dest="dry_run",
        help="Print planned actions without writing",
    )
    _ = parser.add_argument(
        "-l", "--list", action="store_true", dest="list_mode", help="List skills and where they live"
    )
    _ = parser.add_argument(
        "-H", "--home", action="store_true", dest="home_mode", help="Sync skills in the home directory"
    )
    _ = parser.add_argument(
        "-r", "--reconfigure", action="store_true", help="Choose the assistants to sync again"
    )
    _ = parser.add_argument(
        "--targets",
        type=_parse_targets,
        default=None,
        help=f"Comma-separated assistants to sync ({','.join(known_platforms())})",
    )
    _ = parser.add_argument(
        "--root",
        type=Path,
        default=None,
        help="Project root (default: current directory)",
    )
    _ = parser.add_argument("-v", "--verbose", action="store_true", help="Verbose logging")
    return parser


def _options_from_args(args: argparse.Namespace) -> SyncOptions:
    root = cast(Path | None, args.root)
    options = SyncOptions(
        root=root if root is not None else Path.cwd(),
        fail_on_conflict=cast(bool, args.fail_on_conflict),
        dry_run=cast(bool, args.dry_run),
        list_mode=cast(bool, args.list_mode),
        home_mode=cast(bool, args.home_mode),
        reconfigure=cast(bool, args.reconfigure),
        targets=cast(list[str] | None, args.targets),
        verbose=cast(bool, args.verbose),
    )
    return options.apply_env()


def _make_prompter(options: SyncOptions) -> Prompter:
    # Conflicts never reach the prompter under fail-fast; setup questions take defaults
    if options.fail_on_conflict:
        return DefaultPrompter()
    return InteractivePrompter()


def main() -> None:
    parser = _build_parser()
    args = parser.parse_args(sys.argv[1:])
    options = _options_from_args(args)

    logging.basicConfig(
        level=logging.DEBUG if options.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        _ = run(options, _make_prompter(options))
    except UnresolvedConflictError as e:
        print(f"Error: {e}", file=sys.stderr)
        print("Run without --fail-on-conflict to resolve interactively.", file=sys.stderr)
        sys.exit(1)
    except (SyncAbortedError, ConfigError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    except PromptCancelledError:
        print("Error: input closed, sync aborted", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
