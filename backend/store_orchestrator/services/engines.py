from dataclasses import dataclass, field
from pathlib import Path

from store_orchestrator.core.config import EngineSettings, Settings
from store_orchestrator.core.errors import InvalidEngineError


@dataclass(frozen=True)
class DeploymentTemplate:
    release_name: str
    namespace: str
    chart_path: str
    values_file: str
    set_values: dict[str, str] = field(default_factory=dict)


class EngineCatalog:
    def __init__(self, charts_base_path: str, engines: dict[str, EngineSettings]):
        self.charts_base_path = charts_base_path
        self._engines = dict(engines)

    @classmethod
    def from_settings(cls, settings: Settings) -> "EngineCatalog":
        return cls(settings.charts_base_path, settings.engines)

    def names(self) -> list[str]:
        return sorted(self._engines)

    def __contains__(self, engine: object) -> bool:
        return engine in self._engines

    def require(self, engine: str) -> EngineSettings:
        spec = self._engines.get(engine)
        if spec is None:
            raise InvalidEngineError(engine)
        return spec

    def chart_path(self, engine: str) -> str:
        return str(Path(self.charts_base_path) / self.require(engine).chart)

    def build_template(self, engine: str, store_id: str, hostname: str, production: bool) -> DeploymentTemplate:
        spec = self.require(engine)
        chart_path = self.chart_path(engine)
        values_file = "values-prod.yaml" if production else "values-local.yaml"
        set_values = {
            key: value.format(hostname=hostname, store_id=store_id) for key, value in spec.set_values.items()
        }
        return DeploymentTemplate(
            release_name=store_id,
            namespace=store_id,
            chart_path=chart_path,
            values_file=str(Path(chart_path) / values_file),
            set_values=set_values,
        )
