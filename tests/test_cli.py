from pathlib import Path

from typer.testing import CliRunner

from routeguard.cli.app import app

runner = CliRunner()


def _config(tmp_path: Path) -> Path:
    config_path = tmp_path / "routeguard.yml"
    config_path.write_text(
        f"""
resources:
  - patterns: ["/login", "/denied", "/signature"]
    permissions: ["__anonymous__"]
  - patterns: ["/pay"]
    permissions: ["reports"]
    labels: ["__signatured__"]
  - patterns: ["/reports"]
    permissions: ["reports"]
storage:
  backend: file
  path: {tmp_path / "identity.json"}
""",
        encoding="utf-8",
    )
    return config_path


def _invoke(config_path: Path, *args: str):
    return runner.invoke(app, ["--config", str(config_path), *args])


def test_resources_lists_configured_patterns(tmp_path: Path) -> None:
    result = _invoke(_config(tmp_path), "resources")
    assert result.exit_code == 0, result.output
    assert "/reports" in result.output
    assert "anonymous" in result.output


def test_login_decide_logout(tmp_path: Path) -> None:
    config_path = _config(tmp_path)

    result = _invoke(config_path, "decide", "/reports")
    assert result.exit_code == 0, result.output
    assert "notAuthentication" in result.output

    result = _invoke(config_path, "login", "--permission", "reports")
    assert result.exit_code == 0, result.output

    result = _invoke(config_path, "decide", "/reports")
    assert "allowAccess" in result.output

    _invoke(config_path, "logout")
    result = _invoke(config_path, "decide", "/reports")
    assert "notAuthentication" in result.output


def test_sign_and_simulate(tmp_path: Path) -> None:
    config_path = _config(tmp_path)
    _invoke(config_path, "login", "-p", "reports")

    result = _invoke(config_path, "simulate", "/pay")
    assert result.exit_code == 0, result.output
    assert "location: /signature" in result.output

    _invoke(config_path, "sign", "/pay")
    result = _invoke(config_path, "simulate", "/pay")
    assert "location: /pay" in result.output


def test_vote(tmp_path: Path) -> None:
    config_path = _config(tmp_path)
    result = _invoke(config_path, "vote", "-r", "user", "--held", "admin", "--hierarchy", "admin>user")
    assert result.exit_code == 0
    assert "granted" in result.output

    result = _invoke(config_path, "vote", "-r", "user", "--held", "admin")
    assert result.exit_code == 1
    assert "denied" in result.output
