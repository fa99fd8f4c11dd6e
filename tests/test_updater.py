"""
Tests for updater.py - the slug backfill driver.
"""

import pytest
from sqlalchemy.exc import OperationalError

from conftest import FakeSlugStore, add_entries, slugs_by_uid
from slugfill.config import SlugConfig
from slugfill.repository import SlugRepository, StorageUnavailable
from slugfill.resolver import UniquenessBudgetExhausted, UniquenessResolver
from slugfill.sanitize import SlugSanitizer
from slugfill.updater import SlugUpdater
from slugfill.validate import find_duplicate_slugs, validate


class TestUpdateNecessary:
    def test_blank_slugs_need_update(self, seeded_session):
        assert SlugUpdater(SlugRepository(seeded_session)).update_necessary() is True

    def test_filled_table_needs_nothing(self, db_session):
        add_entries(db_session, [(1, "a", "a", 0)])

        assert SlugUpdater(SlugRepository(db_session)).update_necessary() is False

    def test_deleted_row_with_blank_slug_counts(self, db_session):
        add_entries(db_session, [(1, "a", "", 1)])

        assert SlugUpdater(SlugRepository(db_session)).update_necessary() is True


class TestExecuteUpdate:
    def test_seeded_backfill(self, seeded_session):
        updater = SlugUpdater(SlugRepository(seeded_session))

        summary = updater.execute_update()

        assert slugs_by_uid(seeded_session) == {
            1: "hello-world",
            2: "hello-world-1",
            3: "hello-world-2",
            4: "",
            5: "apfel",
            6: "apfel",  # uid 5 is deleted, so it does not collide
            7: None,
        }
        assert summary["scanned"] == 5
        assert summary["updated"] == 3
        assert summary["suffixed"] == 2
        assert summary["skipped_blank_title"] == 2
        assert summary["exhausted"] == []
        assert summary["not_persisted"] == []

    def test_result_satisfies_invariants(self, seeded_session):
        SlugUpdater(SlugRepository(seeded_session)).execute_update()

        assert validate(seeded_session) == []

    def test_second_run_is_noop(self, seeded_session):
        repo = SlugRepository(seeded_session)
        SlugUpdater(repo).execute_update()
        after_first = slugs_by_uid(seeded_session)

        updater = SlugUpdater(repo)
        second = updater.execute_update()

        assert slugs_by_uid(seeded_session) == after_first
        assert second["updated"] == 0
        # only the untitled rows remain blank
        assert second["skipped_blank_title"] == 2

    def test_earlier_assignments_in_same_run_are_seen(self, db_session):
        add_entries(db_session, [
            (1, "Same", "", 0),
            (2, "Same", "", 0),
            (3, "Same", "", 0),
        ])

        SlugUpdater(SlugRepository(db_session)).execute_update()

        assert slugs_by_uid(db_session) == {1: "same", 2: "same-1", 3: "same-2"}

    def test_blank_title_never_reaches_sanitizer_or_resolver(self, db_session):
        add_entries(db_session, [(1, "", "", 0), (2, None, None, 0)])
        calls = []

        class RecordingSanitizer:
            def sanitize(self, text):
                calls.append(("sanitize", text))
                return text

        class RecordingResolver:
            def resolve_with_status(self, exclude_id, candidate):
                calls.append(("resolve", exclude_id))
                return candidate, False

        updater = SlugUpdater(
            SlugRepository(db_session),
            sanitizer=RecordingSanitizer(),
            resolver=RecordingResolver(),
        )
        summary = updater.execute_update()

        assert calls == []
        assert summary["skipped_blank_title"] == 2
        assert slugs_by_uid(db_session) == {1: "", 2: None}

    def test_unusable_title_gets_fallback_slug(self, db_session):
        add_entries(db_session, [(1, "???", "", 0), (2, "!!!", "", 0)])

        SlugUpdater(SlugRepository(db_session)).execute_update()

        assert slugs_by_uid(db_session) == {1: "untitled", 2: "untitled-1"}

    def test_deleted_row_is_filled_without_blocking_active_rows(self, db_session):
        add_entries(db_session, [(1, "Term", "", 1), (2, "Term", "", 0)])

        SlugUpdater(SlugRepository(db_session)).execute_update()

        # deleted rows are outside the uniqueness scope in both directions
        assert slugs_by_uid(db_session) == {1: "term", 2: "term"}

    def test_sanitizer_config_is_used(self, db_session):
        add_entries(db_session, [(1, "Hello World", "", 0)])
        sanitizer = SlugSanitizer(SlugConfig(fallback_character="_"))

        SlugUpdater(SlugRepository(db_session), sanitizer=sanitizer).execute_update()

        assert slugs_by_uid(db_session) == {1: "hello_world"}

    def test_metrics_recorded(self, seeded_session, isolated_logger):
        SlugUpdater(SlugRepository(seeded_session), logger=isolated_logger).execute_update()

        metrics = isolated_logger.get_metrics()
        assert metrics["rows_scanned"] == 5
        assert metrics["rows_updated"] == 3
        assert metrics["rows_suffixed"] == 2
        assert metrics["skipped_by_reason"] == {"blank_title": 2}

    def test_description_names_columns(self, db_session):
        description = SlugUpdater(SlugRepository(db_session)).description

        assert '"path_segment"' in description
        assert '"title"' in description


class TestUniquenessBudgetInRun:
    @pytest.fixture
    def saturated_session(self, db_session):
        entries = [(1, "X", "x", 0)]
        entries += [(1 + n, "X", f"x-{n}", 0) for n in range(1, 101)]
        entries.append((500, "X", "", 0))
        add_entries(db_session, entries)
        return db_session

    def test_duplicate_accepted_and_reported(self, saturated_session):
        summary = SlugUpdater(SlugRepository(saturated_session)).execute_update()

        assert summary["exhausted"] == [500]
        assert slugs_by_uid(saturated_session)[500] == "x-100"
        # documented exception to the uniqueness invariant
        assert find_duplicate_slugs(saturated_session) == {"x-100": [101, 500]}

    def test_strict_resolver_aborts(self, saturated_session):
        repo = SlugRepository(saturated_session)
        resolver = UniquenessResolver(repo.count_active_rows_with_slug_excluding, strict=True)

        with pytest.raises(UniquenessBudgetExhausted):
            SlugUpdater(repo, resolver=resolver).execute_update()

        assert slugs_by_uid(saturated_session)[500] == ""


class TestStorageFailure:
    def test_failure_aborts_run_and_keeps_earlier_rows(self, db_session):
        add_entries(db_session, [
            (1, "One", "", 0),
            (2, "Two", "", 0),
            (3, "Three", "", 0),
        ])
        repo = SlugRepository(db_session)
        original_persist = repo.persist_slug

        def failing_persist(row_id, slug):
            if row_id == 2:
                with repo.storage_errors("persist_slug"):
                    raise OperationalError("UPDATE", {}, Exception("database is locked"))
            return original_persist(row_id, slug)

        repo.persist_slug = failing_persist

        with pytest.raises(StorageUnavailable):
            SlugUpdater(repo).execute_update()

        assert slugs_by_uid(db_session) == {1: "one", 2: "", 3: ""}

    def test_resolver_injection_uses_fake_counter(self, db_session):
        add_entries(db_session, [(1, "Taken", "", 0)])
        store = FakeSlugStore({"taken": [99]})
        resolver = UniquenessResolver(store.count)

        SlugUpdater(SlugRepository(db_session), resolver=resolver).execute_update()

        assert slugs_by_uid(db_session) == {1: "taken-1"}
