from __future__ import annotations

import argparse
import logging
import subprocess
import sys
from pathlib import Path
from typing import Callable

from .backup import Backup, BackupError
from .config import default_config_path, load_config
from .doctor import print_doctor_report, run_doctor
from .gh import GhClient
from .git import GitRepo
from .retry import load_retry

log = logging.getLogger(__name__)


def detect_repo_root(repo_root: str | None = None) -> Path:
    """Resolve the top of the work tree the mirror is kept in."""
    start = Path(repo_root).expanduser().resolve() if repo_root else Path.cwd()
    if repo_root and not start.is_dir():
        raise NotADirectoryError(f"Not a directory: {start}")
    proc = subprocess.run(
        ["git", "rev-parse", "--show-toplevel"],
        cwd=start,
        text=True,
        capture_output=True,
        check=False,
    )
    if proc.returncode != 0:
        return start
    return Path(proc.stdout.strip()).resolve()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ghmirror",
        description="Mirror GitHub metadata and forks into a branch of a local git repository",
    )

    # given after the subcommand, options must not reset values given before it
    def add_common_args(target: argparse.ArgumentParser, *, with_defaults: bool) -> None:
        def default(value: object) -> object:
            return value if with_defaults else argparse.SUPPRESS

        target.add_argument(
            "--config",
            default=default(str(default_config_path())),
            help="Config TOML file",
        )
        target.add_argument(
            "--repo-root",
            default=default(None),
            help="Repository that receives the mirror (default: the current one)",
        )
        target.add_argument(
            "--log-level",
            default=default("INFO"),
            choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        )
        target.add_argument(
            "--log-file",
            default=default(None),
            help="Also write log lines to this file",
        )

    add_common_args(parser, with_defaults=True)
    sub = parser.add_subparsers(dest="command", required=True)
    for name, help_text in (
        ("run", "Back up metadata of every GitHub remote and its forks"),
        ("status", "Show mirrored repositories and requests pending retry"),
        ("doctor", "Check that git, gh and the repository are ready"),
    ):
        add_common_args(sub.add_parser(name, help=help_text), with_defaults=False)
    return parser


def configure_logging(level: str, log_file: str | None) -> None:
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    log_path = None
    if log_file:
        log_path = Path(log_file).expanduser().resolve()
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path, encoding="utf-8"))
    logging.basicConfig(
        level=getattr(logging, level),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
        handlers=handlers,
        force=True,
    )
    if log_path is not None:
        log.info("file logging enabled path=%s", log_path)


def build_backup(config_path: str, repo_root: Path) -> Backup:
    config = load_config(config_path)
    repo = GitRepo(repo_root)
    gh = GhClient(gh_cmd=config.gh_cmd, hostname=config.host, per_page=config.per_page)
    return Backup(config=config, repo=repo, gh=gh)


def cmd_run(config_path: str, repo_root: Path) -> int:
    backup = build_backup(config_path, repo_root)
    backup.run()
    return 0


def cmd_status(config_path: str, repo_root: Path) -> int:
    backup = build_backup(config_path, repo_root)
    remotes = backup.repo.github_remotes(backup.config.host)
    if not remotes:
        print(f"No GitHub remotes configured in: {repo_root}")
    else:
        print(f"Mirrored repositories: {len(remotes)}")
        for remote, target in remotes:
            print(f"{target.slug} ({remote.name})")
    pending = load_retry(backup.retry_path)
    print(f"Requests pending retry: {len(pending)}")
    for req in pending:
        print(f"- {req}")
    return 0


def cmd_doctor(config_path: str, repo_root: Path) -> int:
    config = load_config(config_path)
    results, ok = run_doctor(config=config, repo_root=repo_root)
    print_doctor_report(results)
    return 0 if ok else 1


COMMANDS: dict[str, Callable[[str, Path], int]] = {
    "run": cmd_run,
    "status": cmd_status,
    "doctor": cmd_doctor,
}


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level, args.log_file)
    try:
        repo_root = detect_repo_root(args.repo_root)
        return COMMANDS[args.command](args.config, repo_root)
    except KeyboardInterrupt:
        return 130
    except BackupError as exc:
        log.error("%s", exc)
        return 1
    except Exception as exc:
        log.exception("ghmirror failed: %s", exc)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
