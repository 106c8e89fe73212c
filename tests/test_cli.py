from __future__ import annotations

import logging

import pytest
import yaml
from click.testing import CliRunner

from profile_configs.cli.main import cli


@pytest.fixture(autouse=True)
def restore_root_handlers():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def settings_file(tmp_path):
    path = tmp_path / "profile-configs.yaml"
    path.write_text(
        yaml.dump({
            "default_profile": "notes-db",
            "data_dir": str(tmp_path / "data"),
            "storage": "json",
            "log_level": "WARNING",
        }),
        encoding="utf-8",
    )
    return path


@pytest.fixture
def invoke(settings_file):
    runner = CliRunner()

    def _invoke(*args):
        return runner.invoke(cli, ["--no-rich", "-s", str(settings_file), *args])

    return _invoke


def test_set_then_get(invoke, tmp_path):
    saved = invoke("set", "theme=dark", "pagination=25")
    theme = invoke("get", "theme")
    pagination = invoke("get", "pagination")

    assert saved.exit_code == 0
    assert "已保存 2 项配置" in saved.output
    assert theme.output.strip() == "dark"
    assert pagination.output.strip() == "25"
    assert (tmp_path / "data" / "notes-db" / "configs.json").exists()


def test_show_dumps_configs(invoke):
    result = invoke("show")

    configs = yaml.safe_load(result.output)
    assert result.exit_code == 0
    assert configs["theme"] == "default"
    assert configs["appProfiles"] == ["notes-db"]


def test_get_unknown_config(invoke):
    result = invoke("get", "nope")

    assert result.exit_code == 1


def test_get_with_fallback(invoke):
    result = invoke("get", "nope", "--default", "fallback")

    assert result.exit_code == 0
    assert result.output.strip() == "fallback"


def test_set_unknown_config_fails(invoke):
    result = invoke("set", "nope=1")

    assert result.exit_code == 1


def test_set_rejects_malformed_pair(invoke):
    result = invoke("set", "theme")

    assert result.exit_code == 2


def test_profiles_create_list_remove(invoke):
    created = invoke("profiles", "create", "work")
    listed = invoke("profiles", "list")
    removed = invoke("profiles", "remove", "work", "--yes")
    relisted = invoke("profiles", "list")

    assert created.exit_code == 0
    assert "work" in created.output
    assert listed.output.splitlines() == ["notes-db (default)", "work"]
    assert removed.exit_code == 0
    assert relisted.output.splitlines() == ["notes-db (default)"]


def test_profiles_create_duplicate(invoke):
    invoke("profiles", "create", "work")
    result = invoke("profiles", "create", "work")

    assert result.exit_code == 1


def test_profile_option_reads_inherited_configs(invoke):
    invoke("set", "theme=dark")
    invoke("profiles", "create", "work")

    result = invoke("-p", "work", "get", "theme")

    assert result.output.strip() == "dark"


def test_reset_encrypt(invoke):
    invoke("set", "encrypt=1")
    result = invoke("reset-encrypt")
    backup = invoke("get", "encryptBackup")

    assert result.exit_code == 0
    assert backup.output.strip() == "{}"


def test_settings_generate(invoke, tmp_path):
    output = tmp_path / "generated.yaml"

    result = invoke("settings", "generate", str(output))

    assert result.exit_code == 0
    assert yaml.safe_load(output.read_text(encoding="utf-8"))["default_profile"] == "notes-db"


def test_settings_show(invoke, tmp_path):
    result = invoke("settings", "show")

    settings = yaml.safe_load(result.output)
    assert result.exit_code == 0
    assert settings["data_dir"] == str(tmp_path / "data")
    assert settings["log_level"] == "WARNING"


def test_settings_set_writes_file(invoke, settings_file):
    result = invoke("settings", "set", "log_level=ERROR", "storage=memory")

    saved = yaml.safe_load(settings_file.read_text(encoding="utf-8"))
    assert result.exit_code == 0
    assert saved["log_level"] == "ERROR"
    assert saved["storage"] == "memory"
    assert saved["data_dir"].endswith("data")


def test_settings_set_rejects_bad_values(invoke, settings_file):
    unknown = invoke("settings", "set", "colour=blue")
    invalid = invoke("settings", "set", "storage=sqlite")

    assert unknown.exit_code == 2
    assert invalid.exit_code == 1
    assert yaml.safe_load(settings_file.read_text(encoding="utf-8"))["storage"] == "json"


def test_settings_reset(invoke, settings_file):
    result = invoke("settings", "reset", "--yes")

    saved = yaml.safe_load(settings_file.read_text(encoding="utf-8"))
    assert result.exit_code == 0
    assert saved["data_dir"] == "~/.profile-configs"
    assert saved["log_level"] == "INFO"
