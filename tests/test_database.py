"""
Sentinel - Database Tests
=========================

Tests for the warning ledger and blocklist rows.
"""

import csv
import io
import json

import pytest

from sentinel.core.database import AppealError, APPEAL_APPROVED, APPEAL_DENIED, APPEAL_PENDING
from sentinel.services.automod.models import Severity

from conftest import GUILD_ID, NOW, USER_ID


MOD_ID = 111222333
APPEAL_TEXT = "I was quoting someone else, not using it myself."


class TestAddWarning:
    """Tests for recording warnings."""

    def test_add_and_get(self, test_db):
        warning = test_db.add_warning(GUILD_ID, USER_ID, "Spam", MOD_ID, Severity.MODERATE, now=NOW)

        assert len(warning.id) == 8
        assert warning.id.isalnum() and warning.id.upper() == warning.id

        stored = test_db.get_warning(warning.id.lower())
        assert stored is not None
        assert stored.reason == "Spam"
        assert stored.severity == Severity.MODERATE
        assert stored.created_at == NOW
        assert stored.removed is False

    def test_add_and_count_includes_new_warning(self, test_db):
        _, first = test_db.add_warning_and_count(GUILD_ID, USER_ID, "a", MOD_ID, now=NOW)
        _, second = test_db.add_warning_and_count(GUILD_ID, USER_ID, "b", MOD_ID, now=NOW + 1)
        assert (first, second) == (1, 2)

    def test_count_is_per_guild(self, test_db):
        test_db.add_warning(GUILD_ID, USER_ID, "a", MOD_ID, now=NOW)
        test_db.add_warning(GUILD_ID + 1, USER_ID, "b", MOD_ID, now=NOW)
        assert test_db.get_active_warning_count(GUILD_ID, USER_ID, now=NOW) == 1

    def test_negative_duration_is_permanent(self, test_db):
        warning = test_db.add_warning(GUILD_ID, USER_ID, "a", MOD_ID, duration=-5, now=NOW)
        assert warning.duration == 0

    def test_user_warnings_newest_first(self, test_db):
        test_db.add_warning(GUILD_ID, USER_ID, "old", MOD_ID, now=NOW)
        test_db.add_warning(GUILD_ID, USER_ID, "new", MOD_ID, now=NOW + 10)
        reasons = [w.reason for w in test_db.get_user_warnings(GUILD_ID, USER_ID)]
        assert reasons == ["new", "old"]


class TestExpiry:
    """Tests for duration-based expiry."""

    def test_active_until_duration_elapses(self, test_db):
        warning = test_db.add_warning(GUILD_ID, USER_ID, "a", MOD_ID, duration=3600, now=NOW)

        assert test_db.get_active_warning_count(GUILD_ID, USER_ID, now=NOW + 3599.999) == 1
        assert test_db.get_active_warning_count(GUILD_ID, USER_ID, now=NOW + 3600.001) == 0
        assert warning.is_active(NOW + 3599.999) is True
        assert warning.is_active(NOW + 3600.001) is False

    def test_permanent_never_expires(self, test_db):
        test_db.add_warning(GUILD_ID, USER_ID, "a", MOD_ID, duration=0, now=NOW)
        assert test_db.get_active_warning_count(GUILD_ID, USER_ID, now=NOW + 10 ** 9) == 1

    def test_mark_expired(self, test_db):
        test_db.add_warning(GUILD_ID, USER_ID, "short", MOD_ID, duration=60, now=NOW)
        test_db.add_warning(GUILD_ID, USER_ID, "long", MOD_ID, duration=3600, now=NOW)
        test_db.add_warning(GUILD_ID, USER_ID, "forever", MOD_ID, now=NOW)

        assert test_db.mark_expired_warnings(now=NOW + 120) == 1
        assert test_db.mark_expired_warnings(now=NOW + 120) == 0


class TestRemoval:
    """Tests for soft removal."""

    def test_remove_warning(self, test_db):
        warning = test_db.add_warning(GUILD_ID, USER_ID, "a", MOD_ID, now=NOW)

        removed = test_db.remove_warning(warning.id, MOD_ID, "Mistake", now=NOW + 5)

        assert removed.removed is True
        assert removed.removed_by == MOD_ID
        assert removed.removed_reason == "Mistake"
        assert removed.removed_at == NOW + 5
        assert test_db.get_active_warning_count(GUILD_ID, USER_ID, now=NOW + 5) == 0
        assert len(test_db.get_user_warnings(GUILD_ID, USER_ID)) == 1

    def test_remove_twice_returns_none(self, test_db):
        warning = test_db.add_warning(GUILD_ID, USER_ID, "a", MOD_ID, now=NOW)
        test_db.remove_warning(warning.id, MOD_ID)
        assert test_db.remove_warning(warning.id, MOD_ID) is None

    def test_remove_unknown(self, test_db):
        assert test_db.remove_warning("ZZZZZZZZ", MOD_ID) is None

    def test_clear_warnings(self, test_db):
        for i in range(3):
            test_db.add_warning(GUILD_ID, USER_ID, f"w{i}", MOD_ID, now=NOW)
        test_db.add_warning(GUILD_ID, USER_ID + 1, "other", MOD_ID, now=NOW)

        assert test_db.clear_warnings(GUILD_ID, USER_ID, MOD_ID) == 3
        assert test_db.get_active_warning_count(GUILD_ID, USER_ID) == 0
        assert test_db.get_active_warning_count(GUILD_ID, USER_ID + 1) == 1
        assert len(test_db.get_user_warnings(GUILD_ID, USER_ID, include_removed=False)) == 0

    def test_edit_warning(self, test_db):
        warning = test_db.add_warning(GUILD_ID, USER_ID, "a", MOD_ID, now=NOW)

        edited = test_db.edit_warning(warning.id, reason="b", severity="severe", duration=60)

        assert edited.reason == "b"
        assert edited.severity == Severity.SEVERE
        assert edited.duration == 60

    def test_edit_unknown(self, test_db):
        assert test_db.edit_warning("ZZZZZZZZ", reason="b") is None


class TestAppeals:
    """Tests for the appeal workflow."""

    def test_submit_appeal(self, test_db):
        warning = test_db.add_warning(GUILD_ID, USER_ID, "a", MOD_ID, now=NOW)

        appealed = test_db.submit_appeal(warning.id, USER_ID, APPEAL_TEXT, now=NOW + 1)

        assert appealed.appeal_status == APPEAL_PENDING
        assert appealed.appeal_reason == APPEAL_TEXT
        assert appealed.appealed_at == NOW + 1

    @pytest.mark.parametrize("reason", ["too short", "x" * 501, ""])
    def test_reason_length(self, test_db, reason):
        warning = test_db.add_warning(GUILD_ID, USER_ID, "a", MOD_ID, now=NOW)
        with pytest.raises(AppealError):
            test_db.submit_appeal(warning.id, USER_ID, reason)

    def test_only_own_warning(self, test_db):
        warning = test_db.add_warning(GUILD_ID, USER_ID, "a", MOD_ID, now=NOW)
        with pytest.raises(AppealError):
            test_db.submit_appeal(warning.id, USER_ID + 1, APPEAL_TEXT)

    def test_removed_warning(self, test_db):
        warning = test_db.add_warning(GUILD_ID, USER_ID, "a", MOD_ID, now=NOW)
        test_db.remove_warning(warning.id, MOD_ID)
        with pytest.raises(AppealError):
            test_db.submit_appeal(warning.id, USER_ID, APPEAL_TEXT)

    def test_pending_resubmit_cooldown(self, test_db):
        warning = test_db.add_warning(GUILD_ID, USER_ID, "a", MOD_ID, now=NOW)
        test_db.submit_appeal(warning.id, USER_ID, APPEAL_TEXT, now=NOW)

        with pytest.raises(AppealError):
            test_db.submit_appeal(warning.id, USER_ID, APPEAL_TEXT, now=NOW + 60)

        resubmitted = test_db.submit_appeal(warning.id, USER_ID, APPEAL_TEXT, now=NOW + 301)
        assert resubmitted.appealed_at == NOW + 301

    def test_approve_removes_warning(self, test_db):
        warning = test_db.add_warning(GUILD_ID, USER_ID, "a", MOD_ID, now=NOW)
        test_db.submit_appeal(warning.id, USER_ID, APPEAL_TEXT, now=NOW)

        resolved = test_db.resolve_appeal(warning.id, MOD_ID, approved=True, now=NOW + 10)

        assert resolved.appeal_status == APPEAL_APPROVED
        assert resolved.removed is True
        assert resolved.removed_reason == "Appeal approved"

    def test_deny_keeps_warning(self, test_db):
        warning = test_db.add_warning(GUILD_ID, USER_ID, "a", MOD_ID, now=NOW)
        test_db.submit_appeal(warning.id, USER_ID, APPEAL_TEXT, now=NOW)

        resolved = test_db.resolve_appeal(warning.id, MOD_ID, approved=False)

        assert resolved.appeal_status == APPEAL_DENIED
        assert resolved.removed is False

    def test_resolve_without_pending(self, test_db):
        warning = test_db.add_warning(GUILD_ID, USER_ID, "a", MOD_ID, now=NOW)
        with pytest.raises(AppealError):
            test_db.resolve_appeal(warning.id, MOD_ID, approved=True)


class TestReporting:
    """Tests for stats and export."""

    def test_stats(self, test_db):
        test_db.add_warning(GUILD_ID, USER_ID, "a", MOD_ID, Severity.SEVERE, now=NOW)
        test_db.add_warning(GUILD_ID, USER_ID, "b", MOD_ID, duration=10, now=NOW)
        removed = test_db.add_warning(GUILD_ID, USER_ID + 1, "c", MOD_ID, now=NOW)
        test_db.remove_warning(removed.id, MOD_ID)

        stats = test_db.get_warning_stats(GUILD_ID, now=NOW + 100)

        assert stats["total"] == 3
        assert stats["active"] == 1
        assert stats["expired"] == 1
        assert stats["removed"] == 1
        assert stats["by_severity"] == {"minor": 0, "moderate": 0, "severe": 1}
        assert stats["top_offenders"] == [(USER_ID, 1)]
        assert stats["pending_appeals"] == 0

    def test_export_json(self, test_db):
        warning = test_db.add_warning(GUILD_ID, USER_ID, "a", MOD_ID, now=NOW)
        data = json.loads(test_db.export_warnings(GUILD_ID, "json"))
        assert [row["id"] for row in data] == [warning.id]

    def test_export_csv(self, test_db):
        warning = test_db.add_warning(GUILD_ID, USER_ID, "a, with comma", MOD_ID, now=NOW)
        rows = list(csv.DictReader(io.StringIO(test_db.export_warnings(GUILD_ID, "csv"))))
        assert rows[0]["id"] == warning.id
        assert rows[0]["reason"] == "a, with comma"

    def test_export_unknown_format(self, test_db):
        with pytest.raises(ValueError):
            test_db.export_warnings(GUILD_ID, "xml")


class TestBlocklistRows:
    """Tests for raw blocklist config rows."""

    def test_missing_row(self, test_db):
        assert test_db.get_blocklist_config(GUILD_ID, "words") is None

    def test_save_overwrites(self, test_db):
        test_db.save_blocklist_config(GUILD_ID, "words", "{}")
        test_db.save_blocklist_config(GUILD_ID, "words", '{"enabled": false}')
        assert test_db.get_blocklist_config(GUILD_ID, "words") == '{"enabled": false}'

    def test_update_rolls_back_on_error(self, test_db):
        test_db.save_blocklist_config(GUILD_ID, "words", "{}")

        def boom(raw):
            raise ValueError("nope")

        with pytest.raises(ValueError):
            test_db.update_blocklist_config(GUILD_ID, "words", boom)
        assert test_db.get_blocklist_config(GUILD_ID, "words") == "{}"
