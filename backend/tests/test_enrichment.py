"""
DocCRUD Backend - Join Enrichment Tests
=========================================

Application rows referencing jobs: existing parents contribute their
display fields, missing or malformed references leave the row untouched.
"""

import pytest
from bson import ObjectId

from doccrud.config import JoinRule, settings
from doccrud.services.enrichment import enrich_records
from doccrud.services.record_service import RecordService

JOB = {
    "title": "Backend Engineer",
    "location": "Remote",
    "company": "Acme",
    "company_logo": "https://acme.example/logo.png",
    "salary": "secret",
}


@pytest.fixture
def join():
    return settings.join_for("job-applications")


async def _insert_job(store, fields=None):
    result = await store.collection("jobs").insert_one(dict(fields or JOB))
    return str(result.inserted_id)


@pytest.mark.asyncio
async def test_existing_parent_fields_are_copied(store, join):
    job_id = await _insert_job(store)
    rows = [{"id": "a1", "email": "e", "job_id": job_id}]

    enriched = await enrich_records(store, join, rows)

    assert enriched[0]["title"] == "Backend Engineer"
    assert enriched[0]["location"] == "Remote"
    assert enriched[0]["company"] == "Acme"
    assert enriched[0]["company_logo"] == "https://acme.example/logo.png"
    assert "salary" not in enriched[0]
    assert enriched[0]["job_id"] == job_id


@pytest.mark.asyncio
async def test_missing_parent_leaves_row_without_fields(store, join):
    rows = [{"id": "a1", "job_id": str(ObjectId())}]

    enriched = await enrich_records(store, join, rows)

    assert enriched == rows
    assert "title" not in enriched[0]


@pytest.mark.asyncio
async def test_malformed_or_absent_foreign_key_is_ignored(store, join):
    rows = [{"id": "a1", "job_id": "not-an-id"}, {"id": "a2"}, {"id": "a3", "job_id": 42}]

    enriched = await enrich_records(store, join, rows)

    assert enriched == rows


@pytest.mark.asyncio
async def test_row_order_is_preserved_and_parents_shared(store, join):
    first = await _insert_job(store, {**JOB, "title": "First"})
    second = await _insert_job(store, {**JOB, "title": "Second"})
    rows = [
        {"id": "a1", "job_id": second},
        {"id": "a2", "job_id": first},
        {"id": "a3", "job_id": second},
    ]

    enriched = await enrich_records(store, join, rows)

    assert [r["id"] for r in enriched] == ["a1", "a2", "a3"]
    assert [r["title"] for r in enriched] == ["Second", "First", "Second"]


@pytest.mark.asyncio
async def test_parent_without_a_configured_field_does_not_add_it(store, join):
    job_id = await _insert_job(store, {"title": "Only title"})

    enriched = await enrich_records(store, join, [{"id": "a1", "job_id": job_id}])

    assert enriched[0]["title"] == "Only title"
    assert "company" not in enriched[0]


@pytest.mark.asyncio
async def test_custom_join_rule(store):
    team = await store.collection("jobs").insert_one({"title": "Platform"})
    rule = JoinRule(source="users", foreign_key="team_id", target="jobs", fields=["title"])

    enriched = await enrich_records(store, rule, [{"id": "u1", "team_id": str(team.inserted_id)}])

    assert enriched[0]["title"] == "Platform"


@pytest.mark.asyncio
async def test_list_records_enriches_configured_collection(store):
    service = RecordService()
    job_id = await _insert_job(store)
    await service.create_record(store, "job-applications", {"email": "e", "job_id": job_id})
    await service.create_record(store, "job-applications", {"email": "e", "job_id": str(ObjectId())})
    await service.create_record(store, "job-applications", {"email": "other", "job_id": job_id})

    rows = await service.list_records(store, "job-applications", {"email": "e"})

    assert len(rows) == 2
    with_job = [r for r in rows if r["job_id"] == job_id]
    without_job = [r for r in rows if r["job_id"] != job_id]
    assert with_job[0]["company"] == "Acme"
    assert "company" not in without_job[0]
