import httpx
import pytest

from store_orchestrator.services.readiness import ReadinessService


def _service(handler) -> ReadinessService:
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return ReadinessService(client=client, sleep=lambda _seconds: None)


def test_redirect_counts_as_reachable():
    service = _service(lambda request: httpx.Response(302, headers={"location": "/wp-admin/install.php"}))

    assert service.probe("http://store-abcde.localtest.me") is None


def test_server_error_is_reported():
    service = _service(lambda request: httpx.Response(503))

    assert service.probe("http://store-abcde.localtest.me") == "status=503"


def test_wait_returns_once_store_answers():
    responses = iter([httpx.Response(502), httpx.Response(502), httpx.Response(200)])
    service = _service(lambda request: next(responses))

    service.wait_for_http_ok("http://store-abcde.localtest.me", timeout_seconds=60, poll_seconds=1)


def test_wait_times_out_with_last_reason():
    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    service = _service(refuse)

    with pytest.raises(TimeoutError, match="ConnectError"):
        service.wait_for_http_ok("http://store-abcde.localtest.me", timeout_seconds=0.05, poll_seconds=0)


def test_close_releases_the_http_client():
    client = httpx.Client(transport=httpx.MockTransport(lambda request: httpx.Response(200)))
    service = ReadinessService(client=client)

    service.close()

    assert client.is_closed
