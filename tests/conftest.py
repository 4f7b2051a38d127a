"""
Pytest configuration and fixtures for plugintools tests.

This module provides shared fixtures used across unit, integration,
and security tests.
"""

import tempfile
from pathlib import Path
from typing import Generator

import pytest

from plugintools.schema import (
    Config,
    FileManagerConfig,
    SchedulerConfig,
    ShellExecutorConfig,
    ToolsConfig,
)


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir).resolve()


@pytest.fixture
def shell_config() -> ShellExecutorConfig:
    """Shell configuration allowing a handful of harmless programs."""
    return ShellExecutorConfig(
        allowed_commands=["echo", "ls", "sleep", "pwd", "sh", "false"],
        max_timeout=10,
    )


@pytest.fixture
def scheduler_config() -> SchedulerConfig:
    """Scheduler configuration with a small ceiling and no notifications."""
    return SchedulerConfig(max_tasks=5, enable_notifications=False)


@pytest.fixture
def app_config(temp_dir: Path, shell_config: ShellExecutorConfig) -> Config:
    """Full configuration rooted at temp_dir."""
    return Config(
        tools=ToolsConfig(
            file_manager=FileManagerConfig(allowed_paths=[str(temp_dir)], max_file_size=1024),
            shell_executor=shell_config,
            scheduler=SchedulerConfig(max_tasks=3),
        )
    )


@pytest.fixture
def sample_config_yaml(temp_dir: Path) -> str:
    """Return a configuration YAML for testing."""
    return f"""
server:
  host: 0.0.0.0
  port: 9090
security:
  enable_auth: true
  api_keys:
    - secret-key
tools:
  file_manager:
    allowed_paths:
      - "{temp_dir}"
    max_file_size: 2048
  shell_executor:
    allowed_commands: [echo, ls]
    max_timeout: 60
  scheduler:
    max_tasks: 10
    enable_notifications: false
"""
