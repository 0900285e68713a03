from store_orchestrator.models.enums import JobStatus
from store_orchestrator.models.provisioning_job import ProvisioningJob
from store_orchestrator.services.queue import ProvisionJob


def _enqueue(database, queue, store_id="store-aaaaa"):
    with database.session() as db:
        queue.enqueue(db, ProvisionJob(store_id=store_id, hostname=f"{store_id}.localtest.me", type="woocommerce"))
        db.commit()


def test_lease_hands_out_each_job_once(database, services):
    queue = services.queue
    _enqueue(database, queue)

    job = queue.lease("worker-a")

    assert job.store_id == "store-aaaaa"
    assert job.hostname == "store-aaaaa.localtest.me"
    assert job.type == "woocommerce"
    assert job.attempt == 1
    assert queue.lease("worker-b") is None


def test_complete_acknowledges_job(database, services):
    queue = services.queue
    _enqueue(database, queue)
    job = queue.lease("worker-a")

    with database.session() as db:
        queue.complete(db, job.id)
        db.commit()
        row = db.get(ProvisioningJob, job.id)
        assert row.status == JobStatus.DONE
        assert row.completed_at is not None
        assert queue.has_open_job(db, "store-aaaaa") is False


def test_expired_lease_is_redelivered(database, services):
    queue = services.queue
    _enqueue(database, queue)
    first = queue.lease("worker-a")

    assert queue.requeue_stale(lease_seconds=3600) == 0
    assert queue.requeue_stale(lease_seconds=0) == 1

    second = queue.lease("worker-b")
    assert second.id == first.id
    assert second.attempt == 2


def test_cancel_pending_only_touches_queued_jobs(database, services):
    queue = services.queue
    _enqueue(database, queue, "store-aaaaa")
    _enqueue(database, queue, "store-bbbbb")

    with database.session() as db:
        assert queue.cancel_pending(db, "store-aaaaa") == 1
        db.commit()
        assert queue.has_open_job(db, "store-aaaaa") is False
        assert queue.has_open_job(db, "store-bbbbb") is True

    assert queue.lease("worker-a").store_id == "store-bbbbb"
