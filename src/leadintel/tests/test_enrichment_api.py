import pytest

from src.leadintel.domain.enums import EnrichmentKind, RunState

CONTACT = EnrichmentKind.CONTACT_SCRAPE

HEADERS = {"X-User-Id": "user-42", "X-Organization-Id": "org-7"}


async def _submit(client, targets, kind="contact-scrape", **extra):
    return await client.post(
        "/api/enrichment/jobs",
        headers=HEADERS,
        json={"kind": kind, "targets": targets, **extra},
    )


@pytest.mark.anyio
async def test_health(client):
    r = await client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}


@pytest.mark.anyio
async def test_submit_poll_complete(client, gateways, make_prospect, uow, db_session):
    pid = make_prospect(company_name="Acme", website="https://acme.com")

    r = await _submit(client, [{"url": "https://acme.com"}])
    assert r.status_code == 202, r.text
    body = r.json()
    assert body["status"] == "running"
    assert body["provider_run_id"] == "run-1"
    job_id = body["job_id"]

    # провайдер ещё работает
    r = await client.get(f"/api/enrichment/jobs/{job_id}")
    assert r.status_code == 200, r.text
    assert r.json() == {"job_id": job_id, "status": "running", "provider_status": "running"}

    gw = gateways[CONTACT]
    gw.state = RunState.SUCCEEDED
    gw.dataset = [{"url": "https://acme.com", "emails": ["info@acme.com"]}]

    r = await client.get(f"/api/enrichment/jobs/{job_id}")
    assert r.status_code == 200, r.text
    assert r.json() == {
        "job_id": job_id,
        "status": "completed",
        "result": {"processed": 1, "updated": 1, "not_found": 0, "errors": 0},
    }

    db_session.expire_all()
    p = uow.prospects.get_by_id(pid)
    assert p.email == "info@acme.com"

    # повторный poll отдаёт тот же результат и провайдера не трогает
    calls = gw.status_calls
    r = await client.get(f"/api/enrichment/jobs/{job_id}")
    assert r.json()["result"]["updated"] == 1
    assert gw.status_calls == calls


@pytest.mark.anyio
async def test_scope_headers_are_stored_in_payload(client, uow, db_session):
    r = await _submit(client, [{"url": "https://acme.com"}])
    assert r.status_code == 202, r.text

    db_session.expire_all()
    job = uow.jobs.get_by_id(r.json()["job_id"])
    assert job.payload["scope"] == {"user_id": "user-42", "organization_id": "org-7"}
    assert job.payload["run_handle"]["run_id"] == "run-1"


@pytest.mark.anyio
async def test_failed_provider_run(client, gateways):
    r = await _submit(client, [{"url": "https://acme.com"}])
    job_id = r.json()["job_id"]

    gateways[CONTACT].state = RunState.ABORTED
    r = await client.get(f"/api/enrichment/jobs/{job_id}")
    assert r.status_code == 200, r.text
    assert r.json() == {"job_id": job_id, "status": "failed", "error": "provider run aborted"}


@pytest.mark.anyio
async def test_submit_without_targets_is_400(client, gateways):
    r = await _submit(client, [{"name": "No url here"}])
    assert r.status_code == 400, r.text
    assert gateways[CONTACT].started == []


@pytest.mark.anyio
async def test_submit_unknown_kind_is_422(client):
    r = await _submit(client, [{"url": "https://acme.com"}], kind="horoscope")
    assert r.status_code == 422, r.text


@pytest.mark.anyio
async def test_submit_provider_down_is_503(client, gateways, uow):
    gateways[CONTACT].unavailable = True

    r = await _submit(client, [{"url": "https://acme.com"}])
    assert r.status_code == 503, r.text
    assert uow.jobs.list_recent() == []


@pytest.mark.anyio
async def test_poll_provider_down_keeps_job_running(client, gateways, uow, db_session):
    r = await _submit(client, [{"url": "https://acme.com"}])
    job_id = r.json()["job_id"]

    gateways[CONTACT].unavailable = True
    r = await client.get(f"/api/enrichment/jobs/{job_id}")
    assert r.status_code == 503, r.text

    db_session.expire_all()
    assert uow.jobs.get_by_id(job_id).status.value == "running"


@pytest.mark.anyio
async def test_poll_unknown_job_is_404(client):
    r = await client.get("/api/enrichment/jobs/does-not-exist")
    assert r.status_code == 404, r.text


@pytest.mark.anyio
async def test_list_jobs(client):
    await _submit(client, [{"url": "https://acme.com"}, {"url": "https://beta.io"}])
    await _submit(client, [{"name": "Acme"}], kind="directory-lookup")

    r = await client.get("/api/enrichment/jobs")
    assert r.status_code == 200, r.text
    assert len(r.json()) == 2

    r = await client.get("/api/enrichment/jobs", params={"kind": "contact-scrape"})
    jobs = r.json()
    assert len(jobs) == 1
    assert jobs[0]["kind"] == "contact-scrape"
    assert jobs[0]["targets_count"] == 2
    assert "payload" not in jobs[0]


@pytest.mark.anyio
async def test_bulk_submit_and_candidates(client, gateways, make_prospect):
    need = make_prospect(company_name="Needs", website="https://needs.com")
    make_prospect(company_name="Done", website="https://done.com", cms="Shopify", tech_stack=["Shopify"])

    r = await client.get("/api/enrichment/candidates", params={"kind": "tech-stack"})
    assert r.status_code == 200, r.text
    assert [c["id"] for c in r.json()] == [need]

    r = await client.post(
        "/api/enrichment/jobs",
        headers=HEADERS,
        json={"kind": "tech-stack", "bulk": True, "limit": 5},
    )
    assert r.status_code == 202, r.text
    sent, _ = gateways[EnrichmentKind.TECH_STACK].started[0]
    assert [t.internal_id for t in sent] == [need]
