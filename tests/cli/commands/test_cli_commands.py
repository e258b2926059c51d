from unittest.mock import MagicMock

import pytest
from typer.testing import CliRunner

from jarkeeper.cli.main import app
from jarkeeper.kernel.artifacts import CacheKey

runner = CliRunner()


@pytest.fixture(autouse=True)
def cli_manager(manager, app_paths, monkeypatch, mocker):
    """Points every command at the test manager and its fake registry."""
    monkeypatch.setenv("JARKEEPER_HOME", str(app_paths.root))
    mocker.patch("jarkeeper.cli.core.build_manager", return_value=manager)
    return manager


@pytest.fixture
def popen(mocker):
    process = MagicMock(pid=31337)
    process.wait.return_value = 0
    mocker.patch("jarkeeper.kernel.launch.subprocess.Popen", return_value=process)
    return process


# --- create ---

def test_create(registry, app_paths):
    result = runner.invoke(app, ["create", "survival", "1.16.5"])
    assert result.exit_code == 0, result.output
    assert "Created server 'survival'" in result.output
    assert (app_paths.servers_config_dir / "survival.json").exists()
    assert not (app_paths.data_dir / "survival" / "configs" / "eula.txt").exists()


def test_create_with_eula(app_paths):
    result = runner.invoke(app, ["create", "survival", "1.16.5", "--accept-eula"])
    assert result.exit_code == 0, result.output
    assert (app_paths.data_dir / "survival" / "configs" / "eula.txt").exists()


def test_create_latest(registry, cli_manager):
    registry.latest.update({"paper@1.16.5": 794, "paper@1.8.8": 443})
    result = runner.invoke(app, ["create", "survival", "latest"])
    assert result.exit_code == 0, result.output
    assert str(cli_manager.get("survival").version) == "1.16.5-794"


@pytest.mark.parametrize("args, message", [
    (["create", "survival", "1"], "minor"),
    (["create", "survival", "1.16.5", "--kind", "vanilla"], "not a valid server kind"),
])
def test_create_rejects_bad_input(args, message):
    result = runner.invoke(app, args)
    assert result.exit_code == 1
    assert message in result.output


def test_create_duplicate():
    runner.invoke(app, ["create", "survival", "1.16.5"])
    result = runner.invoke(app, ["create", "survival", "1.16.5"])
    assert result.exit_code == 1
    assert "already exists" in result.output


# --- list ---

def test_list_empty():
    result = runner.invoke(app, ["list"])
    assert result.exit_code == 0
    assert "No servers configured" in result.output


def test_list_servers(seed_cache, cli_manager):
    runner.invoke(app, ["create", "survival", "1.16.5"])
    runner.invoke(app, ["create", "lobby", "1.8.8"])
    seed_cache(cli_manager.cache, "paper@1.16.5", 794)

    result = runner.invoke(app, ["list"])

    assert result.exit_code == 0
    assert "survival" in result.output
    assert "lobby" in result.output
    assert "794" in result.output


# --- remove ---

def test_remove_after_typing_name(cli_manager):
    runner.invoke(app, ["create", "survival", "1.16.5"])
    result = runner.invoke(app, ["remove", "survival"], input="survival\n")
    assert result.exit_code == 0, result.output
    assert cli_manager.list_servers() == []


def test_remove_aborts_on_wrong_name(cli_manager):
    runner.invoke(app, ["create", "survival", "1.16.5"])
    result = runner.invoke(app, ["remove", "survival"], input="creative\n")
    assert result.exit_code == 1
    assert [c.name for c in cli_manager.list_servers()] == ["survival"]


def test_remove_unknown_server():
    result = runner.invoke(app, ["remove", "ghost", "--yes"])
    assert result.exit_code == 1
    assert "No server named 'ghost'" in result.output


# --- start ---

def test_start_detached(registry, popen):
    registry.latest["paper@1.16.5"] = 794
    runner.invoke(app, ["create", "survival", "1.16.5"])

    result = runner.invoke(app, ["start", "survival", "--detach"])

    assert result.exit_code == 0, result.output
    assert "pid 31337" in result.output
    assert registry.downloads == [("paper@1.16.5", 794)]
    popen.wait.assert_not_called()


def test_start_waits_and_forwards_exit_code(registry, popen):
    registry.latest["paper@1.16.5"] = 794
    popen.wait.return_value = 3
    runner.invoke(app, ["create", "survival", "1.16.5"])

    result = runner.invoke(app, ["start", "survival"])

    assert result.exit_code == 3
    popen.wait.assert_called_once()


def test_start_unknown_version(registry, popen):
    runner.invoke(app, ["create", "survival", "1.16.5"])
    result = runner.invoke(app, ["start", "survival"])
    assert result.exit_code == 1
    assert "nonexistent Minecraft version" in result.output


# --- download ---

def test_download_to_output(registry, tmp_path, fake_payload):
    registry.latest["paper@1.16.5"] = 794
    output = tmp_path / "server.jar"

    result = runner.invoke(app, ["download", "1.16.5", "-o", str(output)])

    assert result.exit_code == 0, result.output
    assert output.read_bytes() == fake_payload(CacheKey.parse("paper@1.16.5"), 794)


# --- cache ---

def test_cache_list_and_upgrade(registry, seed_cache, cli_manager):
    seed_cache(cli_manager.cache, "paper@1.16.5", 790)
    registry.latest["paper@1.16.5"] = 794

    listed = runner.invoke(app, ["cache", "list"])
    assert listed.exit_code == 0
    assert "paper@1.16.5" in listed.output

    upgraded = runner.invoke(app, ["cache", "upgrade"])
    assert upgraded.exit_code == 0, upgraded.output
    assert "upgraded to build 794" in upgraded.output
    assert cli_manager.cache.get_cached_patch(CacheKey.parse("paper@1.16.5")) == 794


def test_cache_upgrade_failure_lists_units(registry, seed_cache, cli_manager):
    seed_cache(cli_manager.cache, "paper@1.16.5", 790)
    registry.latest["paper@1.16.5"] = 794
    registry.broken.add("paper@1.16.5")

    result = runner.invoke(app, ["cache", "upgrade"])

    assert result.exit_code == 1
    assert "1 refresh unit(s) failed" in result.output


def test_cache_purge(seed_cache, cli_manager):
    artifact = seed_cache(cli_manager.cache, "paper@1.16.5", 790)
    result = runner.invoke(app, ["cache", "purge", "--yes"])
    assert result.exit_code == 0
    assert "Removed 1 cached artifact(s)" in result.output
    assert not artifact.path.exists()


def test_cache_purge_declined(seed_cache, cli_manager):
    seed_cache(cli_manager.cache, "paper@1.16.5", 790)
    result = runner.invoke(app, ["cache", "purge"], input="n\n")
    assert result.exit_code == 1
    assert cli_manager.cached_artifacts() != []


# --- version / serve ---

def test_version(mocker):
    mocker.patch("importlib.metadata.version", return_value="0.1.0")
    result = runner.invoke(app, ["version"])
    assert result.exit_code == 0
    assert "jarkeeper version: 0.1.0" in result.output


def test_serve_runs_uvicorn_with_settings(mocker, monkeypatch):
    monkeypatch.setenv("JARKEEPER_PORT", "9001")
    run = mocker.patch("jarkeeper.cli.commands.serve.uvicorn.run")

    result = runner.invoke(app, ["serve", "--host", "0.0.0.0"])

    assert result.exit_code == 0, result.output
    assert run.call_args.kwargs["host"] == "0.0.0.0"
    assert run.call_args.kwargs["port"] == 9001


def test_serve_rejects_bad_port_setting(mocker, monkeypatch):
    monkeypatch.setenv("JARKEEPER_PORT", "eighty")
    run = mocker.patch("jarkeeper.cli.commands.serve.uvicorn.run")

    result = runner.invoke(app, ["serve"])

    assert result.exit_code == 1
    assert "JARKEEPER_PORT" in result.output
    run.assert_not_called()
