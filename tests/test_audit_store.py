"""Tests for the collection run audit trail."""

import pytest

from src.persistence import PersistenceError
from src.persistence.audit_store import (
    BRAND_FAILED,
    BRAND_SUCCEEDED,
    RUN_FAILED,
    RUN_QUEUED,
    RUN_RUNNING,
    RUN_SUCCEEDED,
)


class TestRunLifecycle:

    def test_create_is_queued(self, audit_store):
        run_id = audit_store.create_run("locations", "cli")
        run = audit_store.get_run(run_id)
        assert run["status"] == RUN_QUEUED
        assert run["run_type"] == "locations"
        assert run["trigger_source"] == "cli"
        assert run["started_at"] is None

    def test_start_then_complete(self, audit_store):
        run_id = audit_store.create_run("locations", "cli")
        audit_store.start_run(run_id)
        assert audit_store.get_run(run_id)["status"] == RUN_RUNNING

        audit_store.complete_run(run_id, records_processed=42)
        run = audit_store.get_run(run_id)
        assert run["status"] == RUN_SUCCEEDED
        assert run["records_processed"] == 42
        assert run["completed_at"] >= run["started_at"]

    def test_fail(self, audit_store):
        run_id = audit_store.create_run("locations", "scheduler")
        audit_store.start_run(run_id)
        audit_store.fail_run(run_id, "all brands failed")
        run = audit_store.get_run(run_id)
        assert run["status"] == RUN_FAILED
        assert run["error_message"] == "all brands failed"

    def test_unknown_run(self, audit_store):
        with pytest.raises(PersistenceError):
            audit_store.fail_run(999, "nope")
        assert audit_store.get_run(999) is None


class TestBrandStatus:

    def test_record_and_list(self, audit_store):
        run_id = audit_store.create_run("locations", "cli")
        audit_store.record_brand_status(run_id, 2, BRAND_FAILED, error="locator fetch failed")
        audit_store.record_brand_status(run_id, 1, BRAND_SUCCEEDED, record_count=12,
                                        note="fallback succeeded after vtinfo failed")

        first, second = audit_store.get_brand_statuses(run_id)
        assert (first["brand_id"], first["status"], first["records_processed"]) == (1, BRAND_SUCCEEDED, 12)
        assert first["note"].startswith("fallback")
        assert second["error_message"] == "locator fetch failed"

    def test_rewrite_same_brand(self, audit_store):
        run_id = audit_store.create_run("locations", "cli")
        audit_store.record_brand_status(run_id, 1, BRAND_FAILED, error="first")
        audit_store.record_brand_status(run_id, 1, BRAND_SUCCEEDED, record_count=3)

        [row] = audit_store.get_brand_statuses(run_id)
        assert row["status"] == BRAND_SUCCEEDED
        assert row["error_message"] is None

    def test_requires_existing_run(self, audit_store):
        with pytest.raises(PersistenceError):
            audit_store.record_brand_status(12345, 1, BRAND_SUCCEEDED)
