"""
DocCRUD Backend - Configuration Tests
=======================================

What we test:
    ✅ COLLECTIONS parsing and join lookup
    ✅ COLLECTION_JOINS read as JSON from the environment
    ✅ Field validators (log level, join fields)
    ✅ Cross-field checks in validate_required_for_production()
"""

import pytest
from pydantic import ValidationError

from doccrud.config import JoinRule, Settings


class TestCollections:

    def test_collections_list_strips_blanks(self):
        s = Settings(collections=" users , jobs,, ")
        assert s.collections_list == ["users", "jobs"]

    def test_default_join_is_applications_to_jobs(self):
        join = Settings().join_for("job-applications")

        assert join.target == "jobs"
        assert join.foreign_key == "job_id"
        assert join.fields == ["title", "location", "company", "company_logo"]

    def test_collection_without_join(self):
        assert Settings().join_for("users") is None

    def test_joins_from_environment(self, monkeypatch):
        monkeypatch.setenv(
            "COLLECTION_JOINS",
            '[{"source": "users", "foreign_key": "team_id", "target": "jobs", "fields": ["title"]}]',
        )

        s = Settings()

        assert s.join_for("users").foreign_key == "team_id"
        assert s.join_for("job-applications") is None


class TestValidators:

    def test_log_level_is_uppercased(self):
        assert Settings(log_level="debug").log_level == "DEBUG"

    def test_invalid_log_level(self):
        with pytest.raises(ValidationError):
            Settings(log_level="verbose")

    def test_join_needs_fields(self):
        with pytest.raises(ValidationError):
            JoinRule(source="a", foreign_key="b_id", target="b", fields=[])


class TestProductionValidation:

    def test_defaults_pass(self):
        Settings().validate_required_for_production()

    def test_empty_collections(self):
        with pytest.raises(ValueError, match="COLLECTIONS"):
            Settings(collections=" , ", collection_joins=[]).validate_required_for_production()

    def test_join_on_unknown_collection(self):
        s = Settings(collections="users")

        with pytest.raises(ValueError, match="'job-applications'"):
            s.validate_required_for_production()

    def test_missing_url(self):
        with pytest.raises(ValueError, match="MONGODB_URL"):
            Settings(mongodb_url="").validate_required_for_production()
