import pytest
from fastapi.testclient import TestClient

from store_orchestrator.core.config import Settings
from store_orchestrator.db.session import Database
from store_orchestrator.main import create_app
from store_orchestrator.services.container import build_services
from store_orchestrator.services.deployer import DeploymentResult
from store_orchestrator.workers.provisioner import ProvisioningWorker


class FakeDriver:
    def __init__(self):
        self.apply_result = DeploymentResult(ok=True, output="release deployed")
        self.teardown_result = DeploymentResult(ok=True, output="namespace deleted")
        self.applied = []
        self.torn_down = []

    def apply(self, template, timeout_seconds):
        self.applied.append((template, timeout_seconds))
        return self.apply_result

    def teardown(self, store_id, timeout_seconds):
        self.torn_down.append(store_id)
        return self.teardown_result


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        environment="local",
        database_url="sqlite+pysqlite:///:memory:",
        charts_base_path="/charts",
        run_worker=False,
        http_ready_check_enabled=False,
    )


@pytest.fixture
def database(settings):
    db = Database(settings.database_url)
    db.init()
    db.create_schema()
    yield db
    db.dispose()


@pytest.fixture
def driver():
    return FakeDriver()


@pytest.fixture
def services(settings, database, driver):
    return build_services(settings, database=database, driver=driver)


@pytest.fixture
def worker(settings, services, driver):
    return ProvisioningWorker(settings, services.database, services.queue, services.catalog, driver)


@pytest.fixture
def client(settings, services):
    app = create_app(settings, services)
    with TestClient(app) as test_client:
        yield test_client
