import pytest
from typer.testing import CliRunner

import main as main_module
from adapters.factory import AdapterFactory
from config.adapters import TestingConfig

runner = CliRunner()


@pytest.fixture
def file_config(tmp_path, monkeypatch):
    """명령마다 엔진을 새로 만들므로 파일 SQLite를 사용"""
    config = TestingConfig(database_url=f"sqlite+aiosqlite:///{tmp_path / 'cli.db'}")
    factory = AdapterFactory(config)

    monkeypatch.setattr("main.get_config", lambda: config)
    monkeypatch.setattr("adapters.cli.db_commands.get_config", lambda: config)
    monkeypatch.setattr("adapters.cli.channel_commands.get_adapter_factory", lambda: factory)
    monkeypatch.setattr("adapters.cli.sync_commands.get_adapter_factory", lambda: factory)
    return config


def test_version():
    result = runner.invoke(main_module.app, ["version"])

    assert result.exit_code == 0
    assert main_module.__version__ in result.output


def test_config_shows_queue_backend(file_config):
    result = runner.invoke(main_module.app, ["config"])

    assert result.exit_code == 0
    assert "database" in result.output


def test_connect_then_enqueue_and_list_jobs(file_config):
    assert runner.invoke(main_module.app, ["db", "init"]).exit_code == 0

    connected = runner.invoke(
        main_module.app,
        ["channel", "connect", "user@example.com", "--workspace", "ws-1", "--refresh-token", "rt"],
    )
    assert connected.exit_code == 0, connected.output
    channel_id = next(
        line.split(":", 1)[1].strip()
        for line in connected.output.splitlines()
        if line.startswith("채널 ID:")
    )

    enqueued = runner.invoke(main_module.app, ["sync", "enqueue", channel_id, "--workspace", "ws-1"])
    assert enqueued.exit_code == 0, enqueued.output

    assert runner.invoke(main_module.app, ["channel", "show", channel_id]).exit_code == 0
    assert runner.invoke(main_module.app, ["db", "jobs"]).exit_code == 0


def test_connect_rejects_unknown_provider(file_config):
    result = runner.invoke(
        main_module.app, ["channel", "connect", "user@example.com", "-w", "ws-1", "--provider", "yahoo"]
    )

    assert result.exit_code == 1
