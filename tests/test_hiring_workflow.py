"""Tests for job postings, applications and employer review."""

import pytest

from ethiolearn.errors import (
    NotFoundError,
    PermissionDeniedError,
    StoreError,
    TransitionError,
    WorkflowValidationError,
)
from ethiolearn.models import JobCreate
from ethiolearn.storage import Upload
from ethiolearn.workflow import HiringWorkflow

from .conftest import EMPLOYER_ID, LEARNER_ID


def cv(name: str = "cv.pdf") -> Upload:
    return Upload(filename=name, content=b"%PDF-cv", content_type="application/pdf")


class TestPostJob:
    @pytest.mark.asyncio
    async def test_employer_posts_job(self, fake_db, employer):
        job = JobCreate(
            title="Data Analyst",
            company=" Addis Data ",
            location="Addis Ababa",
            requirements="SQL",
        )
        created = await HiringWorkflow.post_job(fake_db, employer, job)

        assert created["employer_id"] == EMPLOYER_ID
        assert created["company"] == "Addis Data"
        assert created["salary"] is None

    @pytest.mark.asyncio
    async def test_only_employers_post(self, fake_db, learner, instructor):
        job = JobCreate(title="T", company="C", location="L", requirements="R")
        for user in (learner, instructor):
            with pytest.raises(PermissionDeniedError):
                await HiringWorkflow.post_job(fake_db, user, job)
        assert fake_db.rows("jobs") == []

    @pytest.mark.parametrize("field", ["title", "company", "location", "requirements"])
    def test_required_fields(self, field):
        data = {"title": "T", "company": "C", "location": "L", "requirements": "R", field: "  "}
        with pytest.raises(ValueError):
            JobCreate(**data)

    @pytest.mark.asyncio
    async def test_list_mine(self, fake_db, employer, job):
        fake_db.seed(
            "jobs",
            title="Other",
            company="X",
            location="Y",
            requirements="Z",
            employer_id="usr_someone_else",
        )
        mine = await HiringWorkflow.list_jobs(fake_db, employer, mine=True)
        assert [j["id"] for j in mine] == [job["id"]]
        assert len(await HiringWorkflow.list_jobs(fake_db, employer)) == 2


class TestApply:
    @pytest.mark.asyncio
    async def test_apply_uploads_cv(self, fake_db, settings, learner, job):
        application = await HiringWorkflow.apply_to_job(fake_db, settings, learner, job["id"], cv())

        assert application["status"] == "applied"
        assert application["user_id"] == LEARNER_ID
        bucket, name = fake_db.storage.uploads[0]
        assert bucket == settings.cv_bucket
        assert application["cv_storage_path"] == name

    @pytest.mark.asyncio
    async def test_cv_required(self, fake_db, settings, learner, job):
        with pytest.raises(WorkflowValidationError):
            await HiringWorkflow.apply_to_job(fake_db, settings, learner, job["id"], None)
        assert fake_db.rows("job_applications") == []

    @pytest.mark.asyncio
    async def test_only_learners_apply(self, fake_db, settings, employer, job):
        with pytest.raises(PermissionDeniedError):
            await HiringWorkflow.apply_to_job(fake_db, settings, employer, job["id"], cv())

    @pytest.mark.asyncio
    async def test_unknown_job(self, fake_db, settings, learner):
        with pytest.raises(NotFoundError):
            await HiringWorkflow.apply_to_job(fake_db, settings, learner, "missing", cv())
        assert fake_db.storage.uploads == []

    @pytest.mark.asyncio
    async def test_duplicate_refused_before_upload(self, fake_db, settings, learner, job):
        await HiringWorkflow.apply_to_job(fake_db, settings, learner, job["id"], cv())

        with pytest.raises(TransitionError):
            await HiringWorkflow.apply_to_job(fake_db, settings, learner, job["id"], cv())

        assert len(fake_db.storage.uploads) == 1
        assert len(fake_db.rows("job_applications")) == 1

    @pytest.mark.asyncio
    async def test_cv_upload_failure(self, fake_db, settings, learner, job):
        fake_db.fail(f"storage.{settings.cv_bucket}.upload")
        with pytest.raises(StoreError):
            await HiringWorkflow.apply_to_job(fake_db, settings, learner, job["id"], cv())
        assert fake_db.rows("job_applications") == []

    @pytest.mark.asyncio
    async def test_has_applied_flag(self, fake_db, settings, learner, other_learner, job):
        await HiringWorkflow.apply_to_job(fake_db, settings, learner, job["id"], cv())

        assert (await HiringWorkflow.list_jobs(fake_db, learner))[0]["has_applied"] is True
        assert (await HiringWorkflow.get_job(fake_db, learner, job["id"]))["has_applied"] is True
        assert (await HiringWorkflow.list_jobs(fake_db, other_learner))[0]["has_applied"] is False


class TestApplicationVisibility:
    @pytest.mark.asyncio
    async def test_scoped_by_role(
        self, fake_db, settings, learner, other_learner, employer, other_employer, admin, instructor, job
    ):
        await HiringWorkflow.apply_to_job(fake_db, settings, learner, job["id"], cv())
        await HiringWorkflow.apply_to_job(fake_db, settings, other_learner, job["id"], cv())

        assert len(await HiringWorkflow.list_applications(fake_db, learner)) == 1
        assert len(await HiringWorkflow.list_applications(fake_db, employer)) == 2
        assert await HiringWorkflow.list_applications(fake_db, other_employer) == []
        assert len(await HiringWorkflow.list_applications(fake_db, admin)) == 2

        with pytest.raises(PermissionDeniedError):
            await HiringWorkflow.list_applications(fake_db, instructor)


class TestDecideApplication:
    @pytest.mark.asyncio
    async def test_only_owning_employer(self, fake_db, settings, learner, other_employer, admin, job):
        application = await HiringWorkflow.apply_to_job(fake_db, settings, learner, job["id"], cv())

        for user in (other_employer, admin, learner):
            with pytest.raises(PermissionDeniedError):
                await HiringWorkflow.decide_application(fake_db, user, application["id"], "accepted")
        assert fake_db.rows("job_applications")[0]["status"] == "applied"

    @pytest.mark.asyncio
    async def test_invalid_decision(self, fake_db, settings, learner, employer, job):
        application = await HiringWorkflow.apply_to_job(fake_db, settings, learner, job["id"], cv())
        with pytest.raises(WorkflowValidationError):
            await HiringWorkflow.decide_application(fake_db, employer, application["id"], "applied")

    @pytest.mark.asyncio
    async def test_unknown_application(self, fake_db, employer):
        with pytest.raises(NotFoundError):
            await HiringWorkflow.decide_application(fake_db, employer, "missing", "accepted")

    @pytest.mark.asyncio
    async def test_concurrent_decision_conflicts(
        self, fake_db, settings, learner, employer, job, monkeypatch
    ):
        """A decision that lands after the row changed reports a conflict."""
        application = await HiringWorkflow.apply_to_job(fake_db, settings, learner, job["id"], cv())

        from ethiolearn import database

        real_get = database.get_application

        async def stale_get(db, application_id):
            row = await real_get(db, application_id)
            # The employer decides in another tab between our read and our write
            fake_db.rows("job_applications")[0]["status"] = "accepted"
            return row

        monkeypatch.setattr(database, "get_application", stale_get)

        with pytest.raises(TransitionError) as exc_info:
            await HiringWorkflow.decide_application(fake_db, employer, application["id"], "rejected")

        assert exc_info.value.status_code == 409
        assert "another request" in exc_info.value.detail
        assert fake_db.rows("job_applications")[0]["status"] == "accepted"


class TestDownloadCv:
    @pytest.mark.asyncio
    async def test_employer_and_applicant_can_download(
        self, fake_db, settings, learner, other_learner, employer, other_employer, job
    ):
        application = await HiringWorkflow.apply_to_job(fake_db, settings, learner, job["id"], cv())

        download = await HiringWorkflow.download_cv(fake_db, settings, employer, application["id"])
        assert download.filename == f"{application['id']}_CV.pdf"
        assert download.content == b"%PDF-cv"

        own = await HiringWorkflow.download_cv(fake_db, settings, learner, application["id"])
        assert own.content == b"%PDF-cv"

        for user in (other_employer, other_learner):
            with pytest.raises(PermissionDeniedError):
                await HiringWorkflow.download_cv(fake_db, settings, user, application["id"])


class TestEndToEnd:
    @pytest.mark.asyncio
    async def test_apply_review_reject(self, fake_db, settings, learner, employer, job):
        application = await HiringWorkflow.apply_to_job(fake_db, settings, learner, job["id"], cv())

        inbox = await HiringWorkflow.list_applications(fake_db, employer)
        assert [a["id"] for a in inbox] == [application["id"]]
        assert inbox[0]["status"] == "applied"

        rejected = await HiringWorkflow.decide_application(
            fake_db, employer, application["id"], "rejected"
        )
        assert rejected["status"] == "rejected"

        mine = await HiringWorkflow.list_applications(fake_db, learner)
        assert mine[0]["status"] == "rejected"

        with pytest.raises(TransitionError):
            await HiringWorkflow.decide_application(fake_db, employer, application["id"], "accepted")
        assert fake_db.rows("job_applications")[0]["status"] == "rejected"
