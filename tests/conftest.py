"""Shared fixtures for aws-secrets-tools tests."""
from pathlib import Path

import pytest

from aws_secrets_tools.secrets.domains import config_loader
from aws_secrets_tools.secrets.domains import preferences


@pytest.fixture(autouse=True)
def aws_environment(monkeypatch):
    """Fake AWS credentials and region; no X-Ray daemon unless a test sets one."""
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_SECURITY_TOKEN", "testing")
    monkeypatch.setenv("AWS_SESSION_TOKEN", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", "us-east-1")
    monkeypatch.delenv("AWS_XRAY_DAEMON_ADDRESS", raising=False)
    monkeypatch.delenv("STACK_NAME", raising=False)


@pytest.fixture
def temp_home(tmp_path, monkeypatch):
    """Fixture to create a temporary home directory for testing."""
    fake_home = tmp_path / "home"
    fake_home.mkdir()
    monkeypatch.setenv("HOME", str(fake_home))
    monkeypatch.setattr(Path, "home", lambda: fake_home)

    fake_config_dir = fake_home / ".config" / "aws-secrets-tools"
    monkeypatch.setattr(preferences, "PREFERENCES_DIR", fake_config_dir)
    monkeypatch.setattr(preferences, "PREFERENCES_FILE", fake_config_dir / "preferences.json")
    monkeypatch.setattr(config_loader, "DEFAULT_CONFIG_DIR", fake_config_dir)

    return fake_home


@pytest.fixture
def temp_config_dir(temp_home):
    """Fixture to create temporary config directory."""
    config_dir = temp_home / ".config" / "aws-secrets-tools"
    config_dir.mkdir(parents=True, exist_ok=True)
    return config_dir
