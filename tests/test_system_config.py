import logging

import pytest

from dap_client.config import ClientSettings, JitterMode
from dap_client.config.system import (
    CLIENT_CONFIG_ENV_VAR,
    load_client_settings,
    resolve_client_config_path,
)


def test_load_client_settings_from_default_location(tmp_path, monkeypatch):
    monkeypatch.delenv(CLIENT_CONFIG_ENV_VAR, raising=False)
    settings_file = tmp_path / "dap-client.json"
    settings_file.write_text('{"retry": {"max_attempts": 5, "jitter": "equal"}, "log_level": "debug"}')

    settings, path = load_client_settings(tmp_path)

    assert path == settings_file.resolve()
    assert settings.retry.max_attempts == 5
    assert settings.retry.jitter == JitterMode.EQUAL
    assert settings.retry.base_delay == 0.5  # default
    assert settings.log_level == "DEBUG"


def test_load_client_settings_from_env_override(tmp_path, monkeypatch):
    override_path = tmp_path / "custom.json"
    override_path.write_text('{"transport": {"upload_method": "put", "transient_statuses": [408, 429, 425]}}')
    monkeypatch.setenv(CLIENT_CONFIG_ENV_VAR, str(override_path))

    settings, path = load_client_settings(tmp_path / "elsewhere")

    assert path == override_path
    assert settings.transport.upload_method == "PUT"
    assert settings.transport.transient_statuses == frozenset({408, 425, 429})


def test_missing_file_falls_back_to_defaults(tmp_path, monkeypatch):
    monkeypatch.delenv(CLIENT_CONFIG_ENV_VAR, raising=False)

    settings, path = load_client_settings(tmp_path)

    assert path == (tmp_path / "dap-client.json").resolve()
    assert settings.retry.max_attempts == 3
    assert settings.transport.request_timeout == 10.0
    assert settings.transport.upload_method == "POST"


def test_relative_env_override_is_taken_from_cwd(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv(CLIENT_CONFIG_ENV_VAR, "conf/client.json")

    assert resolve_client_config_path() == (tmp_path / "conf" / "client.json").resolve()


def test_load_client_settings_invalid_json(tmp_path, monkeypatch):
    monkeypatch.delenv(CLIENT_CONFIG_ENV_VAR, raising=False)
    (tmp_path / "dap-client.json").write_text("{invalid json")

    with pytest.raises(ValueError):
        load_client_settings(tmp_path)


def test_load_client_settings_unknown_key(tmp_path, monkeypatch):
    monkeypatch.delenv(CLIENT_CONFIG_ENV_VAR, raising=False)
    (tmp_path / "dap-client.json").write_text('{"retry": {"attempts": 2}}')

    with pytest.raises(ValueError):
        load_client_settings(tmp_path)


def test_loaded_log_level_is_applied(tmp_path, monkeypatch):
    monkeypatch.delenv(CLIENT_CONFIG_ENV_VAR, raising=False)
    monkeypatch.setenv("LOG_LEVEL", "error")
    (tmp_path / "dap-client.json").write_text('{"log_level": "warning"}')
    settings, _ = load_client_settings(tmp_path)

    package_logger = logging.getLogger("dap_client")
    try:
        settings.apply_logging()
        assert package_logger.level == logging.WARNING
        assert not logging.getLogger("dap_client.client").isEnabledFor(logging.INFO)

        ClientSettings(log_level="DEBUG").apply_logging()
        assert package_logger.level == logging.DEBUG
    finally:
        for handler in list(package_logger.handlers):
            package_logger.removeHandler(handler)
            handler.close()
        package_logger.propagate = True
        package_logger.setLevel(logging.NOTSET)
