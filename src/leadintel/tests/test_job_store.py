from src.leadintel.domain.enums import EnrichmentKind, JobStatus


def _create(uow, kind=EnrichmentKind.CONTACT_SCRAPE):
    job = uow.jobs.create(kind, {"run_handle": {"run_id": "r1", "dataset_id": "d1"}, "targets": []})
    uow.commit()
    return job


def test_create_starts_running(uow):
    job = _create(uow)

    assert job.status == JobStatus.RUNNING
    assert job.scheduled_at == job.started_at
    assert job.completed_at is None
    assert job.result is None and job.error is None
    assert job.run_handle.run_id == "r1"


def test_get_unknown_returns_none(uow):
    assert uow.jobs.get_by_id("missing") is None


def test_complete_is_terminal_once(uow):
    job = _create(uow)

    assert uow.jobs.complete(job.id, {"processed": 1, "updated": 1, "not_found": 0, "errors": 0})
    uow.commit()
    done = uow.jobs.get_by_id(job.id)
    assert done.status == JobStatus.COMPLETED
    assert done.completed_at is not None

    # повторные переходы ничего не меняют
    assert not uow.jobs.complete(job.id, {"processed": 9, "updated": 9, "not_found": 0, "errors": 0})
    assert not uow.jobs.fail(job.id, "late failure")
    uow.commit()

    again = uow.jobs.get_by_id(job.id)
    assert again.status == JobStatus.COMPLETED
    assert again.result == done.result
    assert again.error is None
    assert again.completed_at == done.completed_at


def test_fail_is_terminal_once(uow):
    job = _create(uow)

    assert uow.jobs.fail(job.id, "provider run failed")
    uow.commit()
    failed = uow.jobs.get_by_id(job.id)

    assert not uow.jobs.complete(job.id, {"processed": 1, "updated": 1, "not_found": 0, "errors": 0})
    uow.commit()

    again = uow.jobs.get_by_id(job.id)
    assert again.status == JobStatus.FAILED
    assert again.error == "provider run failed"
    assert again.result is None
    assert again.completed_at == failed.completed_at


def test_list_recent_filters_by_kind(uow):
    _create(uow, EnrichmentKind.CONTACT_SCRAPE)
    _create(uow, EnrichmentKind.TECH_STACK)
    _create(uow, EnrichmentKind.TECH_STACK)

    assert len(uow.jobs.list_recent()) == 3
    tech = uow.jobs.list_recent(kind=EnrichmentKind.TECH_STACK)
    assert [j.kind for j in tech] == [EnrichmentKind.TECH_STACK] * 2
    assert len(uow.jobs.list_recent(limit=1)) == 1
