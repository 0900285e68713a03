import pytest
from pydantic import ValidationError

from store_orchestrator.core.config import Settings


def test_production_requires_public_host_suffix():
    with pytest.raises(ValidationError, match="PUBLIC_HOST_SUFFIX"):
        Settings(_env_file=None, environment="production")


def test_local_mode_needs_no_public_suffix():
    settings = Settings(_env_file=None, environment="local")

    assert settings.is_production is False
    assert set(settings.engines) == {"woocommerce", "medusa"}


def test_engines_can_be_overridden_from_env(monkeypatch):
    monkeypatch.setenv("ENGINES", '{"saleor": {"chart": "saleor", "set_values": {"ingress.host": "{hostname}"}}}')

    settings = Settings(_env_file=None)

    assert list(settings.engines) == ["saleor"]
    assert settings.engines["saleor"].set_values == {"ingress.host": "{hostname}"}
