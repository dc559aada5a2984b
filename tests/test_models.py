"""
Tests for domain models — Receipt, NasTarget, CompatibilityDocument.
"""

from pathlib import Path

import pytest
from pydantic import ValidationError

from diskcompat.core.models import (
    ENTRIES_FIELD,
    CompatibilityDocument,
    NasTarget,
    Receipt,
    default_rule,
)

# ── Receipt ─────────────────────────────────────────────────────────


class TestReceipt:
    def test_success(self):
        r = Receipt.success(adapter="ssh", action_id="q", output="x", return_code=0)
        assert r.ok
        assert not r.failed
        assert r.output == "x"

    def test_failure(self):
        r = Receipt.failure(adapter="scp", action_id="d", error="denied", return_code=1)
        assert r.failed
        assert r.error == "denied"
        assert r.return_code == 1

    def test_skip(self):
        r = Receipt.skip(adapter="scp", action_id="u", reason="dry")
        assert r.status == "skipped"
        assert not r.ok
        assert not r.failed


# ── NasTarget ───────────────────────────────────────────────────────


class TestNasTarget:
    def test_defaults(self):
        t = NasTarget(user="admin", host="nas")
        assert t.connect_timeout == 10
        assert t.remote_db_dir == "/var/lib/disk-compatibility"
        assert t.staging_dir == "~"
        assert t.elevation == "interactive"
        assert t.destination == "admin@nas"

    def test_paths(self):
        t = NasTarget(user="admin", host="nas")
        assert t.db_filename("m") == "m_host_v7.db"
        assert t.modified_filename("m") == "m_host_v7_MODIFIED.db"
        assert t.remote_db_path("m") == "/var/lib/disk-compatibility/m_host_v7.db"
        assert t.staging_path("m") == "~/m_host_v7.db"

    def test_trailing_slash_stripped(self):
        t = NasTarget(user="a", host="h", remote_db_dir="/opt/db/", staging_dir="/tmp/stage/")
        assert t.remote_db_path("m") == "/opt/db/m_host_v7.db"
        assert t.staging_path("m") == "/tmp/stage/m_host_v7.db"

    def test_scratch_dir_is_path(self, tmp_path: Path):
        t = NasTarget(user="a", host="h", scratch_dir=str(tmp_path))
        assert t.scratch_dir == tmp_path

    @pytest.mark.parametrize("user", ["", "   ", "ad min", "a@b"])
    def test_rejects_bad_user(self, user: str):
        with pytest.raises(ValidationError):
            NasTarget(user=user, host="nas")

    def test_rejects_bad_elevation(self):
        with pytest.raises(ValidationError):
            NasTarget(user="a", host="h", elevation="su")

    def test_rejects_zero_timeout(self):
        with pytest.raises(ValidationError):
            NasTarget(user="a", host="h", connect_timeout=0)


# ── CompatibilityDocument ───────────────────────────────────────────


class TestCompatibilityDocument:
    def test_entries_from_wire_name(self, sample_db: dict):
        doc = CompatibilityDocument.from_dict(sample_db)
        assert set(doc.entries) == {"WD40EFRX-68N32N0", "HAT5300-8T"}
        assert doc.nas_model == "DS920+"

    def test_extra_fields_kept(self, sample_db: dict):
        doc = CompatibilityDocument.from_dict(sample_db)
        assert doc.extra_fields == {"success": 1, "version_cycle": "2024-03"}

    def test_to_dict_preserves_key_order(self, sample_db: dict):
        doc = CompatibilityDocument.from_dict(sample_db)
        assert list(doc.to_dict()) == list(sample_db)
        assert doc.to_dict() == sample_db

    def test_to_dict_without_model_field(self):
        doc = CompatibilityDocument.from_dict({ENTRIES_FIELD: {}, "x": [1]})
        assert doc.to_dict() == {ENTRIES_FIELD: {}, "x": [1]}

    def test_add_entry_uses_default_rule(self):
        doc = CompatibilityDocument.from_dict({ENTRIES_FIELD: {}})
        doc.add_entry("NEW")
        assert doc.entries["NEW"] == default_rule()

    def test_add_entry_never_replaces(self, sample_db: dict):
        doc = CompatibilityDocument.from_dict(sample_db)
        with pytest.raises(KeyError):
            doc.add_entry("HAT5300-8T")

    def test_missing_entries_field_invalid(self):
        with pytest.raises(ValidationError):
            CompatibilityDocument.from_dict({"nas_model": "x"})


class TestDefaultRule:
    def test_shape(self):
        assert default_rule() == {
            "default": {"compatibility_interval": [{"compatibility": "support"}]},
        }

    def test_fresh_copy_each_time(self):
        a = default_rule()
        a["default"]["compatibility_interval"].append({"compatibility": "unverified"})
        assert len(default_rule()["default"]["compatibility_interval"]) == 1
