from dataclasses import dataclass, field

from fastapi import Request

from store_orchestrator.core.config import Settings
from store_orchestrator.db.session import Database
from store_orchestrator.services.admission import AdmissionPolicy, default_policies
from store_orchestrator.services.deployer import DeploymentDriver, HelmDeploymentDriver
from store_orchestrator.services.engines import EngineCatalog
from store_orchestrator.services.helm import HelmService
from store_orchestrator.services.kube import KubeService
from store_orchestrator.services.queue import WorkQueue


@dataclass
class Services:
    settings: Settings
    database: Database
    catalog: EngineCatalog
    queue: WorkQueue
    driver: DeploymentDriver
    admission_policies: list[AdmissionPolicy] = field(default_factory=list)


def build_services(
    settings: Settings,
    database: Database | None = None,
    driver: DeploymentDriver | None = None,
    admission_policies: list[AdmissionPolicy] | None = None,
) -> Services:
    database = database or Database(settings.database_url)
    if driver is None:
        driver = HelmDeploymentDriver(
            HelmService(settings.helm_binary),
            KubeService(settings.kubectl_binary, settings.kubectl_delete_timeout_seconds),
        )
    return Services(
        settings=settings,
        database=database,
        catalog=EngineCatalog.from_settings(settings),
        queue=WorkQueue(database),
        driver=driver,
        admission_policies=default_policies(settings) if admission_policies is None else admission_policies,
    )


def get_services(request: Request) -> Services:
    return request.app.state.services
