import os

import pytest

from ghmirror.config import Config, load_config


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch, tmp_path):
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    for key in list(os.environ):
        if key.startswith("GHMIRROR_"):
            monkeypatch.delenv(key)


def test_defaults_without_config_file():
    cfg = load_config()
    assert cfg == Config()
    assert cfg.branch == "github"
    assert cfg.fetch_remotes is True


def test_values_from_toml(tmp_path):
    path = tmp_path / "config.toml"
    path.write_text(
        'branch = "metadata"\nper_page = 50\nmirror_wikis = false\nhost = "git.example.com"\n',
        encoding="utf-8",
    )
    cfg = load_config(path)
    assert cfg.branch == "metadata"
    assert cfg.per_page == 50
    assert cfg.mirror_wikis is False
    assert cfg.host == "git.example.com"


def test_environment_overrides_toml(tmp_path, monkeypatch):
    path = tmp_path / "config.toml"
    path.write_text('branch = "metadata"\n', encoding="utf-8")
    monkeypatch.setenv("GHMIRROR_BRANCH", "backup")
    monkeypatch.setenv("GHMIRROR_FETCH_REMOTES", "no")
    cfg = load_config(path)
    assert cfg.branch == "backup"
    assert cfg.fetch_remotes is False


def test_unprefixed_environment_is_ignored(monkeypatch):
    monkeypatch.setenv("HOST", "workstation")
    assert load_config().host == "github.com"


def test_default_config_file_is_read(tmp_path):
    path = tmp_path / "xdg" / "ghmirror" / "config.toml"
    path.parent.mkdir(parents=True)
    path.write_text('commit_message = "metadata backup"\n', encoding="utf-8")
    assert load_config().commit_message == "metadata backup"


def test_missing_explicit_config_is_an_error(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "nope.toml")


def test_per_page_must_be_positive(monkeypatch):
    monkeypatch.setenv("GHMIRROR_PER_PAGE", "0")
    with pytest.raises(ValueError):
        load_config()


def test_paths_under_git_dir(tmp_path):
    cfg = Config()
    assert cfg.scratch_path(tmp_path) == tmp_path / "ghmirror.tmp"
    assert cfg.retry_path(tmp_path) == tmp_path / "ghmirror.todo"
