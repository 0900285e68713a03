from collections.abc import Callable
import time

import httpx


class ReadinessService:
    """Polls a freshly installed store over HTTP until its ingress answers.

    Any status below 500 counts as reachable: a storefront redirecting to its
    setup wizard is up as far as routing is concerned.
    """

    def __init__(self, client: httpx.Client | None = None, sleep: Callable[[float], None] = time.sleep):
        self.client = client or httpx.Client(timeout=10.0, follow_redirects=True)
        self.sleep = sleep

    def close(self) -> None:
        self.client.close()

    def probe(self, url: str) -> str | None:
        """Return ``None`` when the URL is reachable, otherwise a short reason."""
        try:
            response = self.client.get(url)
        except httpx.HTTPError as exc:
            return f"{type(exc).__name__}: {exc}"
        if response.status_code >= 500:
            return f"status={response.status_code}"
        return None

    def wait_for_http_ok(self, url: str, timeout_seconds: int, poll_seconds: int) -> None:
        deadline = time.monotonic() + timeout_seconds
        reason = "not probed"
        while time.monotonic() < deadline:
            reason = self.probe(url)
            if reason is None:
                return
            self.sleep(poll_seconds)
        raise TimeoutError(f"{url} did not become reachable within {timeout_seconds}s: {reason}")
