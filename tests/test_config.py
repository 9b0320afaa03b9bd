"""Tests for configuration loading."""

import pytest

from simpleipam.config import (
    DEFAULT_KEYCLOAK_CLIENT_ID,
    DEFAULT_KEYCLOAK_REALM,
    DEFAULT_KEYCLOAK_URL,
    Config,
    ConfigError,
)


@pytest.fixture(autouse=True)
def no_config_files(monkeypatch, tmp_path):
    monkeypatch.setattr(Config, "CONFIG_PATHS", [tmp_path / "missing.yaml"])


def _write(tmp_path, text):
    path = tmp_path / "config.yaml"
    path.write_text(text)
    return path


class TestDefaults:

    def test_no_file(self):
        config = Config.load(environ={})
        assert config.api.base_url == "http://localhost:8080/api/v1"
        assert config.api.verify_ssl is True
        assert config.api.timeout == 15
        assert not config.auth.enabled
        assert config.logging.file == ""

    def test_discovered_file(self, monkeypatch, tmp_path):
        path = _write(tmp_path, "api:\n  base_url: http://found/api/v1\n")
        monkeypatch.setattr(Config, "CONFIG_PATHS", [tmp_path / "nope.yaml", path])
        assert Config.find_config_file() == path
        assert Config.load(environ={}).api.base_url == "http://found/api/v1"


class TestFile:

    def test_sections(self, tmp_path):
        path = _write(tmp_path, """
api:
  base_url: https://ipam.example/api/v1/
  verify_ssl: false
  timeout: 30
auth:
  url: https://sso.example
  realm: corp
  client_id: ipam-tui
logging:
  level: debug
  file: /tmp/simpleipam.log
""")
        config = Config.load(path, environ={})
        assert config.api.base_url == "https://ipam.example/api/v1"
        assert config.api.verify_ssl is False
        assert config.api.timeout == 30
        assert config.auth.enabled
        assert config.auth.realm == "corp"
        assert config.auth.client_id == "ipam-tui"
        assert config.logging.level == "DEBUG"
        assert config.logging.file == "/tmp/simpleipam.log"

    def test_partial_auth_gets_defaults(self, tmp_path):
        path = _write(tmp_path, "auth:\n  realm: corp\n")
        config = Config.load(path, environ={})
        assert config.auth.url == DEFAULT_KEYCLOAK_URL
        assert config.auth.realm == "corp"
        assert config.auth.client_id == DEFAULT_KEYCLOAK_CLIENT_ID

    def test_empty_file(self, tmp_path):
        config = Config.load(_write(tmp_path, ""), environ={})
        assert config.api.timeout == 15

    def test_missing_explicit_file(self, tmp_path):
        with pytest.raises(ConfigError, match="not found"):
            Config.load(tmp_path / "absent.yaml", environ={})

    def test_invalid_yaml(self, tmp_path):
        with pytest.raises(ConfigError):
            Config.load(_write(tmp_path, "api: [unclosed\n"), environ={})

    def test_not_a_mapping(self, tmp_path):
        with pytest.raises(ConfigError, match="mapping"):
            Config.load(_write(tmp_path, "- a\n- b\n"), environ={})

    def test_bad_timeout(self, tmp_path):
        with pytest.raises(ConfigError, match="api.timeout"):
            Config.load(_write(tmp_path, "api:\n  timeout: soon\n"), environ={})


class TestEnvironment:

    def test_overrides_file(self, tmp_path):
        path = _write(tmp_path, "api:\n  base_url: http://file/api/v1\n")
        config = Config.load(path, environ={
            "IPAM_API_BASE": "http://env/api/v1/",
            "IPAM_VERIFY_SSL": "no",
            "IPAM_LOG_LEVEL": "info",
        })
        assert config.api.base_url == "http://env/api/v1"
        assert config.api.verify_ssl is False
        assert config.logging.level == "INFO"

    def test_keycloak_variables_enable_auth(self):
        config = Config.load(environ={"IPAM_KEYCLOAK_CLIENT_ID": "cli"})
        assert config.auth.enabled
        assert config.auth.url == DEFAULT_KEYCLOAK_URL
        assert config.auth.realm == DEFAULT_KEYCLOAK_REALM
        assert config.auth.client_id == "cli"

    def test_process_environment(self, monkeypatch):
        monkeypatch.setenv("IPAM_KEYCLOAK_URL", "https://sso.example")
        assert Config.load().auth.url == "https://sso.example"
