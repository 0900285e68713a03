from pathlib import Path

from store_orchestrator.services.tooling import run_tool, wait_budget


class HelmService:
    def __init__(self, helm_binary: str = "helm"):
        self.helm_binary = helm_binary

    def upgrade_install(
        self,
        release_name: str,
        namespace: str,
        chart_path: str,
        values_file: str,
        set_values: dict[str, str],
        timeout_seconds: int,
    ) -> str:
        cmd = [
            self.helm_binary,
            "upgrade",
            "--install",
            release_name,
            str(Path(chart_path)),
            "--namespace",
            namespace,
            "--create-namespace",
            "-f",
            values_file,
        ]
        for key, value in set_values.items():
            cmd.extend(["--set", f"{key}={value}"])
        cmd.extend(["--wait", "--timeout", f"{wait_budget(timeout_seconds)}s"])
        return run_tool(cmd, "Helm", timeout_seconds=timeout_seconds)

    def uninstall(self, release_name: str, namespace: str, timeout_seconds: int) -> str:
        cmd = [
            self.helm_binary,
            "uninstall",
            release_name,
            "-n",
            namespace,
            "--wait",
            "--timeout",
            f"{wait_budget(timeout_seconds)}s",
        ]
        return run_tool(cmd, "Helm", timeout_seconds=timeout_seconds)
