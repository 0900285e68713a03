import subprocess
from types import SimpleNamespace

import pytest

from store_orchestrator.services.helm import HelmService
from store_orchestrator.services.tooling import ToolError


def _install(service: HelmService) -> str:
    return service.upgrade_install(
        release_name="store-1",
        namespace="store-1",
        chart_path="/charts/wc-store",
        values_file="/charts/wc-store/values-local.yaml",
        set_values={"wordpress.ingress.hostname": "store-1.localtest.me"},
        timeout_seconds=300,
    )


def test_upgrade_install_builds_command(monkeypatch):
    service = HelmService(helm_binary="helm")
    calls = []

    def fake_run(cmd, **kwargs):
        calls.append((cmd, kwargs))
        return SimpleNamespace(returncode=0, stdout="STATUS: deployed", stderr="")

    monkeypatch.setattr("subprocess.run", fake_run)

    assert _install(service) == "STATUS: deployed"
    cmd, kwargs = calls[0]
    assert cmd[:5] == ["helm", "upgrade", "--install", "store-1", "/charts/wc-store"]
    assert cmd[cmd.index("--namespace") + 1] == "store-1"
    assert "--create-namespace" in cmd
    assert cmd[cmd.index("-f") + 1] == "/charts/wc-store/values-local.yaml"
    assert cmd[cmd.index("--set") + 1] == "wordpress.ingress.hostname=store-1.localtest.me"
    assert cmd[-3:] == ["--wait", "--timeout", "285s"]
    assert kwargs["timeout"] == 300
    assert "input" not in kwargs


def test_upgrade_install_raises_tool_error_on_failure(monkeypatch):
    service = HelmService(helm_binary="helm")

    def fake_run(*_args, **_kwargs):
        return SimpleNamespace(returncode=1, stdout="", stderr="boom")

    monkeypatch.setattr("subprocess.run", fake_run)

    try:
        _install(service)
    except RuntimeError as exc:
        assert "Helm command failed" in str(exc)
        assert "boom" in exc.output
    else:
        raise AssertionError("Expected RuntimeError")


def test_upgrade_install_reports_timeout(monkeypatch):
    service = HelmService(helm_binary="helm")

    def fake_run(cmd, **kwargs):
        raise subprocess.TimeoutExpired(cmd, kwargs["timeout"])

    monkeypatch.setattr("subprocess.run", fake_run)

    with pytest.raises(ToolError, match="timed out after 300s"):
        _install(service)


def test_missing_binary_is_a_tool_error(monkeypatch):
    service = HelmService(helm_binary="/nonexistent/helm")

    def fake_run(*_args, **_kwargs):
        raise FileNotFoundError("No such file or directory: '/nonexistent/helm'")

    monkeypatch.setattr("subprocess.run", fake_run)

    with pytest.raises(ToolError, match="could not be started"):
        service.uninstall("store-1", "store-1", timeout_seconds=60)


def test_uninstall_is_killed_at_the_configured_timeout(monkeypatch):
    service = HelmService(helm_binary="helm")
    calls = []

    def fake_run(cmd, **kwargs):
        calls.append((cmd, kwargs))
        return SimpleNamespace(returncode=0, stdout="release uninstalled", stderr="")

    monkeypatch.setattr("subprocess.run", fake_run)

    service.uninstall("store-1", "store-1", timeout_seconds=60)

    cmd, kwargs = calls[0]
    # helm gets to report its own timeout before the hard kill.
    assert cmd[-2:] == ["--timeout", "45s"]
    assert kwargs["timeout"] == 60
