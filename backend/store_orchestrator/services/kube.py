from store_orchestrator.services.tooling import run_tool, wait_budget


class KubeService:
    def __init__(self, kubectl_binary: str = "kubectl", delete_timeout_seconds: int = 180):
        self.kubectl_binary = kubectl_binary
        self.delete_timeout_seconds = delete_timeout_seconds

    def delete_namespace(self, namespace: str) -> str:
        cmd = [
            self.kubectl_binary,
            "delete",
            "namespace",
            namespace,
            "--ignore-not-found=true",
            "--wait=true",
            f"--timeout={wait_budget(self.delete_timeout_seconds)}s",
        ]
        return run_tool(cmd, "kubectl", timeout_seconds=self.delete_timeout_seconds)
