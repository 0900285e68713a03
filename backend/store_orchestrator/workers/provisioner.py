import asyncio
from datetime import datetime, timedelta, timezone
import logging
import time

from prometheus_client import Counter
from sqlalchemy.orm import Session

from store_orchestrator.core.config import Settings
from store_orchestrator.db.session import Database
from store_orchestrator.models.enums import StoreStatus
from store_orchestrator.services.deployer import DeploymentDriver, DeploymentResult
from store_orchestrator.services.endpoints import resolve_endpoint
from store_orchestrator.services.engines import DeploymentTemplate, EngineCatalog
from store_orchestrator.services.events import log_event
from store_orchestrator.services.queue import ProvisionJob, WorkQueue
from store_orchestrator.services.readiness import ReadinessService
from store_orchestrator.services.registry import StoreRegistry

logger = logging.getLogger(__name__)

stores_ready_total = Counter("stores_ready_total", "Stores that reached Ready")
stores_failed_total = Counter("stores_failed_total", "Stores that ended in Failed")
jobs_skipped_total = Counter("provisioning_jobs_skipped_total", "Jobs acknowledged without running tooling")
stores_reconciled_total = Counter("stores_reconciled_total", "Jobs re-enqueued for stores stuck in Provisioning")


class ProvisioningWorker:
    def __init__(
        self,
        settings: Settings,
        database: Database,
        queue: WorkQueue,
        catalog: EngineCatalog,
        driver: DeploymentDriver,
        readiness: ReadinessService | None = None,
    ):
        self.settings = settings
        self.database = database
        self.queue = queue
        self.catalog = catalog
        self.driver = driver
        self.readiness = readiness
        self._tasks: set[asyncio.Task] = set()
        self._running = False
        self._last_reconcile = 0.0

    async def start(self) -> None:
        self._running = True
        self.queue.requeue_stale(self.settings.worker_lease_seconds)
        logger.info("Provisioning worker %s started", self.settings.worker_id)
        while self._running:
            try:
                await self._tick()
            except Exception:  # noqa: BLE001
                # A database hiccup must not kill the consumer loop.
                logger.exception("Provisioning worker tick failed")
            await asyncio.sleep(self.settings.worker_poll_seconds)

    def stop(self) -> None:
        self._running = False

    async def drain(self) -> None:
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

    async def _tick(self) -> None:
        if time.monotonic() - self._last_reconcile >= self.settings.reconcile_interval_seconds:
            self._last_reconcile = time.monotonic()
            await asyncio.to_thread(self.queue.requeue_stale, self.settings.worker_lease_seconds)
            await asyncio.to_thread(self.reconcile)

        self._tasks = {task for task in self._tasks if not task.done()}
        available_slots = max(0, self.settings.worker_max_concurrency - len(self._tasks))

        for _ in range(available_slots):
            job = await asyncio.to_thread(self.queue.lease, self.settings.worker_id)
            if not job:
                break
            task = asyncio.create_task(asyncio.to_thread(self.process_job, job))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

    def process_job(self, job: ProvisionJob) -> StoreStatus | None:
        """Run one delivery of a provisioning job and return the status written, if any."""
        with self.database.session() as db:
            registry = StoreRegistry(db)
            store = registry.get(job.store_id)
            if store is None:
                logger.info("Store %s no longer exists; acknowledging job %s", job.store_id, job.id)
                jobs_skipped_total.inc()
                self.queue.complete(db, job.id, "store_not_found")
                db.commit()
                return None

            # Redelivery of a job whose attempt already finished: keep the recorded outcome.
            if store.status != StoreStatus.PROVISIONING:
                logger.info("Store %s already %s; acknowledging job %s", store.id, store.status.value, job.id)
                jobs_skipped_total.inc()
                self.queue.complete(db, job.id, f"store_already_{store.status.value.lower()}")
                db.commit()
                return None

            if job.type not in self.catalog:
                message = f"Unknown store engine '{job.type}'"
                logger.error("Store %s: %s", store.id, message)
                return self._finish(db, registry, job, StoreStatus.FAILED, message)

            template = self.catalog.build_template(
                job.type, store_id=store.id, hostname=job.hostname, production=self.settings.is_production
            )
            log_event(db, store.id, "install_started", f"Installing {template.chart_path} (attempt {job.attempt})")
            db.commit()

            logger.info("Provisioning store %s with chart %s", store.id, template.chart_path)
            result = self._apply(template)

            if not result.ok:
                logger.error("Provisioning store %s failed:\n%s", store.id, result.output)
                return self._finish(db, registry, job, StoreStatus.FAILED, result.output or "deployment failed")

            if result.output:
                logger.debug("helm output for %s:\n%s", store.id, result.output)
            self._check_reachable(db, store.id, store.url)
            return self._finish(db, registry, job, StoreStatus.READY, f"Store is ready at {store.url}")

    def _apply(self, template: DeploymentTemplate) -> DeploymentResult:
        try:
            return self.driver.apply(template, timeout_seconds=self.settings.helm_timeout_seconds)
        except Exception as exc:  # noqa: BLE001
            # The driver contract is to return a result; treat anything else as a failed attempt.
            logger.exception("Deployment driver raised for release %s", template.release_name)
            return DeploymentResult(ok=False, output=str(exc))

    def _check_reachable(self, db: Session, store_id: str, url: str) -> None:
        if not self.readiness or not self.settings.http_ready_check_enabled:
            return
        try:
            self.readiness.wait_for_http_ok(
                url=url,
                timeout_seconds=self.settings.http_ready_timeout_seconds,
                poll_seconds=self.settings.http_ready_poll_seconds,
            )
        except TimeoutError as exc:
            # Local ingress networking can be flaky in laptop runtimes; keep event visibility and continue.
            logger.warning("Store %s did not answer over HTTP: %s", store_id, exc)
            log_event(db, store_id, "readiness_warning", f"HTTP check did not pass before timeout: {exc}")

    def _finish(
        self, db: Session, registry: StoreRegistry, job: ProvisionJob, status: StoreStatus, message: str
    ) -> StoreStatus | None:
        if not registry.transition(job.store_id, status, expected=(StoreStatus.PROVISIONING,)):
            # Deleted, or marked Deleting, while the tooling ran. The delete path owns the record now.
            current = registry.get(job.store_id, fresh=True)
            note = "store_deleted_during_provisioning"
            if current is not None:
                note = f"store_became_{current.status.value.lower()}"
            logger.info("Store %s left Provisioning during the attempt; dropping %s", job.store_id, status.value)
            self.queue.complete(db, job.id, note)
            db.commit()
            return None

        event_type = "ready" if status == StoreStatus.READY else "failed"
        log_event(db, job.store_id, event_type, message)
        self.queue.complete(db, job.id, None if status == StoreStatus.READY else "provisioning_failed")
        db.commit()

        if status == StoreStatus.READY:
            stores_ready_total.inc()
        else:
            stores_failed_total.inc()
        logger.info("Store %s is now %s", job.store_id, status.value)
        return status

    def reconcile(self) -> int:
        """Enqueue a job for every store left in Provisioning without one."""
        cutoff = datetime.now(timezone.utc) - timedelta(seconds=self.settings.reconcile_grace_seconds)
        requeued = 0
        with self.database.session() as db:
            for store in StoreRegistry(db).stuck_in_provisioning(cutoff):
                if self.queue.has_open_job(db, store.id):
                    continue
                endpoint = resolve_endpoint(store.id, self.settings.environment, self.settings)
                self.queue.enqueue(db, ProvisionJob(store_id=store.id, hostname=endpoint.hostname, type=store.type))
                log_event(db, store.id, "requeued", "No pending job found for store in Provisioning; re-enqueued")
                logger.warning("Re-enqueued provisioning job for orphaned store %s", store.id)
                requeued += 1
            db.commit()
        stores_reconciled_total.inc(requeued)
        return requeued
