import pytest
import yaml
from unittest.mock import patch

from tickwork.models.job import JobKind
from tickwork.services.config_manager import ConfigManager, ConfigValidationError


@pytest.fixture
def valid_config_file(tmp_path):
    config_content = {
        "logging": {"level": "debug", "json_output": False},
        "scheduler": {"cron_search_years": 2, "metrics_enabled": False},
        "jobs": [
            {"name": "nightly_backup", "kind": "cron", "cron": "0 2 * * *"},
            {"name": "warmup", "kind": "once", "delay_ms": 5000},
            {"name": "heartbeat", "kind": "interval", "period_ms": 30000},
        ],
    }
    config_file = tmp_path / "tickwork.yaml"
    with open(config_file, "w") as f:
        yaml.dump(config_content, f)
    return config_file


def test_load_valid_config(valid_config_file):
    manager = ConfigManager(config_path=str(valid_config_file), load_env=False)

    config = manager.load_config()

    assert config.logging.level == "DEBUG"
    assert config.logging.json_output is False
    assert config.scheduler.cron_search_years == 2
    assert [job.name for job in config.jobs] == ["nightly_backup", "warmup", "heartbeat"]
    assert config.jobs[0].kind is JobKind.CRON


def test_load_config_is_cached(valid_config_file):
    manager = ConfigManager(config_path=str(valid_config_file), load_env=False)

    first = manager.load_config()
    valid_config_file.write_text("jobs: 42\n")

    assert manager.load_config() is first


def test_load_missing_config():
    manager = ConfigManager(config_path="nonexistent.yaml", load_env=False)
    with pytest.raises(FileNotFoundError):
        manager.load_config()


def test_load_empty_config_uses_defaults(tmp_path):
    config_file = tmp_path / "empty.yaml"
    config_file.write_text("")

    config = ConfigManager(config_path=str(config_file), load_env=False).load_config()

    assert config.logging.level == "INFO"
    assert config.scheduler.cron_search_years == 4
    assert config.jobs == []


def test_env_substitution(tmp_path, monkeypatch):
    monkeypatch.setenv("TICKWORK_TEST_LEVEL", "warning")
    monkeypatch.setenv("TICKWORK_TEST_CRON", "*/5 * * * *")
    config_file = tmp_path / "env.yaml"
    config_file.write_text(
        "logging:\n"
        "  level: ${TICKWORK_TEST_LEVEL}\n"
        "jobs:\n"
        "  - name: poll\n"
        "    kind: cron\n"
        '    cron: "${TICKWORK_TEST_CRON}"\n'
    )

    config = ConfigManager(config_path=str(config_file), load_env=False).load_config()

    assert config.logging.level == "WARNING"
    assert config.jobs[0].cron == "*/5 * * * *"


def test_load_dotenv_called_once(valid_config_file):
    manager = ConfigManager(config_path=str(valid_config_file))
    with patch("tickwork.services.config_manager.load_dotenv") as mock_load:
        manager.load_config()
        manager.load_config()

    mock_load.assert_called_once()


def test_load_config_read_error(tmp_path):
    config_file = tmp_path / "config.yaml"
    config_file.write_text("jobs: []\n")
    manager = ConfigManager(config_path=str(config_file), load_env=False)

    with patch("pathlib.Path.read_text", side_effect=OSError("permission denied")):
        with pytest.raises(ConfigValidationError, match="Failed to read"):
            manager.load_config()


def test_load_config_invalid_yaml(tmp_path):
    config_file = tmp_path / "bad.yaml"
    config_file.write_text("jobs: [unclosed\n")
    manager = ConfigManager(config_path=str(config_file), load_env=False)

    with pytest.raises(ConfigValidationError, match="Failed to parse YAML"):
        manager.load_config()


def test_load_config_root_not_mapping(tmp_path):
    config_file = tmp_path / "list.yaml"
    config_file.write_text("- a\n- b\n")
    manager = ConfigManager(config_path=str(config_file), load_env=False)

    with pytest.raises(ConfigValidationError, match="mapping"):
        manager.load_config()


@pytest.mark.parametrize(
    "jobs",
    [
        [{"name": "bad", "kind": "cron", "cron": "61 * * * *"}],
        [{"name": "bad", "kind": "once", "delay_ms": -1}],
        [{"name": "bad", "kind": "interval", "period_ms": 0}],
        [{"name": "bad", "kind": "interval"}],
        [
            {"name": "dup", "kind": "once", "delay_ms": 1},
            {"name": "dup", "kind": "once", "delay_ms": 2},
        ],
    ],
)
def test_load_config_validation_error(tmp_path, jobs):
    config_file = tmp_path / "invalid.yaml"
    with open(config_file, "w") as f:
        yaml.dump({"jobs": jobs}, f)
    manager = ConfigManager(config_path=str(config_file), load_env=False)

    with pytest.raises(ConfigValidationError, match="Invalid configuration"):
        manager.load_config()
