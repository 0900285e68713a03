from dataclasses import dataclass
import logging
from typing import Protocol

from store_orchestrator.services.engines import DeploymentTemplate
from store_orchestrator.services.helm import HelmService
from store_orchestrator.services.kube import KubeService
from store_orchestrator.services.tooling import ToolError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeploymentResult:
    ok: bool
    output: str = ""


class DeploymentDriver(Protocol):
    def apply(self, template: DeploymentTemplate, timeout_seconds: int) -> DeploymentResult: ...

    def teardown(self, store_id: str, timeout_seconds: int) -> DeploymentResult: ...


class HelmDeploymentDriver:
    """Drives the cluster through the helm and kubectl CLIs.

    Every store gets its own release and namespace, both named after the store id.
    """

    def __init__(self, helm: HelmService, kube: KubeService):
        self.helm = helm
        self.kube = kube

    def apply(self, template: DeploymentTemplate, timeout_seconds: int) -> DeploymentResult:
        try:
            stdout = self.helm.upgrade_install(
                release_name=template.release_name,
                namespace=template.namespace,
                chart_path=template.chart_path,
                values_file=template.values_file,
                set_values=template.set_values,
                timeout_seconds=timeout_seconds,
            )
        except ToolError as exc:
            return DeploymentResult(ok=False, output=exc.output)
        return DeploymentResult(ok=True, output=stdout)

    def teardown(self, store_id: str, timeout_seconds: int) -> DeploymentResult:
        outputs = []
        try:
            outputs.append(self.helm.uninstall(store_id, store_id, timeout_seconds))
        except ToolError as exc:
            # Namespace delete is the authoritative teardown; a missing release is not fatal.
            logger.warning("helm uninstall failed for %s, continuing with namespace delete: %s", store_id, exc)
            outputs.append(exc.output)

        try:
            outputs.append(self.kube.delete_namespace(store_id))
        except ToolError as exc:
            outputs.append(exc.output)
            return DeploymentResult(ok=False, output="\n".join(outputs))
        return DeploymentResult(ok=True, output="\n".join(outputs))
