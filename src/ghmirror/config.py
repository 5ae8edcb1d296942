from __future__ import annotations

import os
from dataclasses import dataclass, fields
from pathlib import Path
import tomllib

_KINDS = {"str": str, "int": int, "bool": bool}


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_value(name: str) -> str | None:
    # prefixed only: HOST and BRANCH are common shell variables
    return os.environ.get(f"GHMIRROR_{name}")


def _convert(value: object, kind: type) -> object:
    if kind is bool:
        return value if isinstance(value, bool) else _parse_bool(str(value))
    return kind(value)


def default_config_path() -> Path:
    base = Path(os.environ.get("XDG_CONFIG_HOME") or Path.home() / ".config").expanduser()
    return (base / "ghmirror" / "config.toml").resolve()


@dataclass(slots=True)
class Config:
    branch: str = "github"
    scratch_dir: str = "ghmirror.tmp"
    retry_file: str = "ghmirror.todo"
    commit_message: str = "ghmirror"
    host: str = "github.com"
    gh_cmd: str = "gh"
    per_page: int = 100
    fetch_remotes: bool = True
    mirror_wikis: bool = True

    def scratch_path(self, git_dir: Path) -> Path:
        return git_dir / self.scratch_dir

    def retry_path(self, git_dir: Path) -> Path:
        return git_dir / self.retry_file


def load_config(config_path: str | Path | None = None) -> Config:
    """Build the config from the TOML file, then `GHMIRROR_<KEY>` overrides.

    Only an explicitly named file that is missing is an error; a missing
    default file just means defaults.
    """
    default_path = default_config_path()
    path = Path(config_path).expanduser() if config_path else default_path
    raw: dict[str, object] = {}
    if path.exists():
        with path.open("rb") as handle:
            raw = tomllib.load(handle)
    elif path.resolve() != default_path:
        raise FileNotFoundError(f"Config file not found: {config_path}")

    values: dict[str, object] = {}
    for field in fields(Config):
        env = _env_value(field.name.upper())
        value = env if env is not None else raw.get(field.name)
        if value is not None:
            values[field.name] = _convert(value, _KINDS[field.type])
    cfg = Config(**values)
    if cfg.per_page <= 0:
        raise ValueError("per_page must be positive")
    return cfg
