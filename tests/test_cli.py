from click.testing import CliRunner

import sshrelease.cli as cli_module


def _fake_deployer(captured, exit_code=0):
    class FakeDeployer:
        def __init__(self, **kwargs):
            captured.update(kwargs)

        def run(self):
            return exit_code

    return FakeDeployer


def test_cli_uses_config_and_allows_cli_override(tmp_path, monkeypatch):
    config_file = tmp_path / "deploy.yml"
    config_file.write_text(
        "hosts:\n"
        "  - deploy@web1\n"
        "  - host: web2\n"
        "    username: deploy\n"
        "    port: 2222\n"
        "target_dir: /srv/app\n"
        "source_dir: dist\n"
        "keep: 3\n"
        "connect_timeout: 20\n"
        "command_timeout: 120\n",
        encoding="utf-8",
    )

    captured = {}
    monkeypatch.setattr(cli_module, "ReleaseDeployer", _fake_deployer(captured))

    runner = CliRunner()
    result = runner.invoke(
        cli_module.main,
        ["--config", str(config_file), "--keep", "2", "--revision-key", "v1.0.0", "--dry-run"],
    )

    assert result.exit_code == 0
    config = captured["config"]
    assert [host.address for host in config.hosts] == ["web1", "web2"]
    assert config.hosts[1].port == 2222
    assert config.keep == 2
    assert config.target_dir == "/srv/app"
    assert captured["revision_key"] == "v1.0.0"
    assert captured["connect_timeout"] == 20.0
    assert captured["command_timeout"] == 120.0
    assert captured["dry_run"] is True


def test_cli_uses_default_config_file_when_present(tmp_path, monkeypatch):
    (tmp_path / ".sshrelease.yml").write_text(
        "hosts: [deploy@web1]\ntarget_dir: /srv/app\nsource_dir: dist\n",
        encoding="utf-8",
    )

    captured = {}
    monkeypatch.setattr(cli_module, "ReleaseDeployer", _fake_deployer(captured))
    monkeypatch.chdir(tmp_path)

    result = CliRunner().invoke(cli_module.main, [])

    assert result.exit_code == 0
    assert captured["config"].keep == 5
    assert captured["config"].releases_dir == "releases"
    assert captured["revision_key"] is None
    assert captured["command_timeout"] == 600.0


def test_cli_hosts_flag_overrides_config_hosts(tmp_path, monkeypatch):
    (tmp_path / ".sshrelease.yml").write_text(
        "hosts: [deploy@web1]\ntarget_dir: /srv/app\nsource_dir: dist\n",
        encoding="utf-8",
    )

    captured = {}
    monkeypatch.setattr(cli_module, "ReleaseDeployer", _fake_deployer(captured))
    monkeypatch.chdir(tmp_path)

    result = CliRunner().invoke(cli_module.main, ["--host", "ops@web9", "--host", "ops@web10"])

    assert result.exit_code == 0
    assert [host.address for host in captured["config"].hosts] == ["web9", "web10"]


def test_cli_reports_missing_required_settings(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(cli_module, "ReleaseDeployer", _fake_deployer({}))

    result = CliRunner().invoke(cli_module.main, ["--host", "deploy@web1", "--source-dir", "dist"])

    assert result.exit_code != 0
    assert "Missing required setting: target_dir" in result.output


def test_cli_propagates_failed_run_exit_code(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(cli_module, "ReleaseDeployer", _fake_deployer({}, exit_code=1))

    result = CliRunner().invoke(
        cli_module.main,
        ["--host", "deploy@web1", "--target-dir", "/srv/app", "--source-dir", "dist"],
    )

    assert result.exit_code == 1
