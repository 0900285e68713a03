import subprocess

# A CLI's own --timeout stays this far under the hard kill so it reports its own error first.
WAIT_RESERVE_SECONDS = 15


def wait_budget(timeout_seconds: int) -> int:
    return max(1, timeout_seconds - WAIT_RESERVE_SECONDS)


class ToolError(RuntimeError):
    def __init__(self, message: str, stdout: str = "", stderr: str = ""):
        super().__init__(message)
        self.stdout = stdout
        self.stderr = stderr

    @property
    def output(self) -> str:
        return "\n".join(part for part in (str(self), self.stdout, self.stderr) if part)


def run_tool(cmd: list[str], label: str, timeout_seconds: int | None = None) -> str:
    """Run an external CLI, returning stdout or raising ``ToolError`` with its output."""
    try:
        process = subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            timeout=timeout_seconds,
        )
    except subprocess.TimeoutExpired as exc:
        raise ToolError(f"{label} command timed out after {timeout_seconds}s: {' '.join(cmd)}") from exc
    except OSError as exc:
        raise ToolError(f"{label} command could not be started: {exc}") from exc
    if process.returncode != 0:
        raise ToolError(
            f"{label} command failed: {' '.join(cmd)}",
            stdout=f"stdout: {process.stdout.strip()}",
            stderr=f"stderr: {process.stderr.strip()}",
        )
    return process.stdout
