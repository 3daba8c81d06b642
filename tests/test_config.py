"""Tests for configuration loading."""

from pathlib import Path

import pytest

from portal.config import PROJECT_ROOT, Config, resolve_path


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    # setenv first so teardown also removes anything load_dotenv() adds
    for name in ("PORTAL_CONFIG", "PORTAL_HTTP_PORT", "FPFSS_URL", "PORTAL_DEFAULT_LANG", "PORTAL_SITE_DIR"):
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)


def write_config(tmp_path, text: str) -> Path:
    path = tmp_path / "config" / "portal.yaml"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text)
    return path


def test_defaults_when_file_missing(tmp_path):
    config = Config.load(tmp_path / "config" / "missing.yaml")
    assert config.default_lang == "en-US"
    assert config.http.port == 8080
    assert config.access.access_hosts == []
    assert config.catalog.page_size == 100
    assert config.logging.log_blocked_requests is True


def test_yaml_values(tmp_path):
    path = write_config(tmp_path, """
site_name: Test Archive
default_lang: fr-FR
http:
  port: 9000
  https_cert: /etc/cert.pem
access:
  access_hosts: [portal.test]
  blocked_ips: ["10.0."]
  blocked_uas: [BadBot]
logging:
  file: null
  log_blocked_requests: false
catalog:
  page_size: 25
  sync_interval: 3600
""")
    config = Config.load(path)
    assert config.site_name == "Test Archive"
    assert config.default_lang == "fr-FR"
    assert config.http.port == 9000
    assert config.http.https_cert == "/etc/cert.pem"
    assert config.access.access_hosts == ["portal.test"]
    assert config.access.blocked_ips == ["10.0."]
    assert config.access.blocked_uas == ["BadBot"]
    assert config.logging.file is None
    assert config.logging.log_blocked_requests is False
    assert config.catalog.page_size == 25
    assert config.catalog.sync_interval == 3600


def test_env_overrides_yaml(tmp_path, monkeypatch):
    path = write_config(tmp_path, "http:\n  port: 9000\ndefault_lang: en-US\n")
    monkeypatch.setenv("PORTAL_HTTP_PORT", "9100")
    monkeypatch.setenv("PORTAL_DEFAULT_LANG", "fr-FR")
    monkeypatch.setenv("FPFSS_URL", "https://fpfss.test")

    config = Config.load(path)
    assert config.http.port == 9100
    assert config.default_lang == "fr-FR"
    assert config.catalog.fpfss_url == "https://fpfss.test"


def test_config_path_from_env(tmp_path, monkeypatch):
    path = write_config(tmp_path, "site_name: From Env\n")
    monkeypatch.setenv("PORTAL_CONFIG", str(path))
    assert Config.load().site_name == "From Env"


def test_dotenv_next_to_config_dir(tmp_path):
    path = write_config(tmp_path, "")
    (tmp_path / ".env").write_text("PORTAL_SITE_DIR=/srv/portal-site\n")
    config = Config.load(path)
    assert config.site_dir == "/srv/portal-site"
    assert config.site_path == Path("/srv/portal-site")


def test_relative_paths_resolve_against_project_root():
    assert resolve_path("site") == PROJECT_ROOT / "site"
    assert resolve_path("/abs/site") == Path("/abs/site")
    assert Config().database_path == PROJECT_ROOT / "data" / "catalog.sqlite"


def test_bundled_config_loads():
    config = Config.load(PROJECT_ROOT / "config" / "portal.yaml")
    assert config.catalog.sync_interval == 86400
    assert config.site_path == PROJECT_ROOT / "site"
