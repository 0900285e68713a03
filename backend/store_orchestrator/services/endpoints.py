from typing import NamedTuple

from store_orchestrator.core.config import PRODUCTION_ENVIRONMENTS, Settings

DEFAULT_LOCAL_BASE_DOMAIN = "localtest.me"


class StoreEndpoint(NamedTuple):
    hostname: str
    url: str


def resolve_endpoint(store_id: str, environment: str, settings: Settings) -> StoreEndpoint:
    """Map a store id to the hostname its ingress binds and the URL shown to users.

    Production stores live under ``public_host_suffix`` (for example
    ``203.0.113.7.sslip.io``) and may carry an explicit port; everything else
    resolves under the local base domain without a port.
    """
    if environment.lower() in PRODUCTION_ENVIRONMENTS:
        hostname = f"{store_id}.{settings.public_host_suffix}"
        port = f":{settings.store_port}" if settings.store_port else ""
        return StoreEndpoint(hostname=hostname, url=f"http://{hostname}{port}")

    base_domain = settings.local_base_domain or DEFAULT_LOCAL_BASE_DOMAIN
    hostname = f"{store_id}.{base_domain}"
    return StoreEndpoint(hostname=hostname, url=f"http://{hostname}")
