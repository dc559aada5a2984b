"""
Tests for compatibility database handling — load, serialize, reconcile.
"""

import copy
import json
from pathlib import Path

import pytest

from diskcompat.core.errors import ParseFailed
from diskcompat.core.models.compat import ENTRIES_FIELD, CompatibilityDocument, default_rule
from diskcompat.core.services.compat_db import (
    load_document,
    missing_models,
    normalize_models,
    read_document,
    reconcile,
    serialize_document,
    write_document,
)


def _doc(data: dict) -> CompatibilityDocument:
    return load_document(json.dumps(data).encode("utf-8"))


# ── Loading ─────────────────────────────────────────────────────────


class TestLoadDocument:
    def test_valid(self, sample_db: dict):
        doc = _doc(sample_db)
        assert len(doc.entries) == 2

    def test_utf8_bom_accepted(self):
        raw = b"\xef\xbb\xbf" + json.dumps({ENTRIES_FIELD: {}}).encode()
        assert load_document(raw).entries == {}

    def test_invalid_utf8(self):
        with pytest.raises(ParseFailed, match="UTF-8"):
            load_document(b"\xff\xfe{")

    def test_invalid_json(self):
        with pytest.raises(ParseFailed, match="not valid JSON"):
            load_document(b"{not json")

    def test_top_level_array(self):
        with pytest.raises(ParseFailed, match="JSON object"):
            load_document(b"[]")

    def test_missing_entries(self):
        with pytest.raises(ParseFailed, match=ENTRIES_FIELD):
            load_document(b'{"nas_model": "DS920+"}')

    def test_entries_not_a_mapping(self):
        with pytest.raises(ParseFailed, match=ENTRIES_FIELD):
            load_document(json.dumps({ENTRIES_FIELD: []}).encode())

    def test_model_required(self):
        raw = json.dumps({ENTRIES_FIELD: {}}).encode()
        assert load_document(raw).nas_model is None
        with pytest.raises(ParseFailed, match="nas_model"):
            load_document(raw, require_model=True)

    def test_parse_failed_carries_stage(self):
        with pytest.raises(ParseFailed) as exc_info:
            load_document(b"nope")
        assert exc_info.value.stage == "parse"
        assert exc_info.value.kind == "parse-failed"

    def test_read_missing_file(self, tmp_path: Path):
        with pytest.raises(ParseFailed, match="Cannot read"):
            read_document(tmp_path / "absent.db")


# ── Serializing ─────────────────────────────────────────────────────


class TestSerializeDocument:
    def test_round_trip_is_semantically_identical(self, sample_db: dict):
        doc = _doc(sample_db)
        assert json.loads(serialize_document(doc)) == sample_db

    def test_stable_formatting(self, sample_db: dict):
        raw = serialize_document(_doc(sample_db))
        assert raw.endswith(b"\n")
        assert raw.startswith(b'{\n  "success": 1,\n  "disk_compatbility_info"')
        assert serialize_document(load_document(raw)) == raw

    def test_non_string_model_field_kept(self):
        data = {ENTRIES_FIELD: {}, "nas_model": 920}
        doc = _doc(data)
        assert doc.to_dict() == data
        assert json.loads(serialize_document(doc)) == data
        assert load_document(json.dumps(data).encode(), require_model=True).nas_model == 920

    def test_non_ascii_kept(self):
        doc = _doc({ENTRIES_FIELD: {}, "note": "Prüfung"})
        assert "Prüfung".encode("utf-8") in serialize_document(doc)

    def test_write_document(self, tmp_path: Path, sample_db: dict):
        path = write_document(_doc(sample_db), tmp_path / "out.db")
        assert read_document(path).to_dict() == sample_db


# ── Normalizing ─────────────────────────────────────────────────────


class TestNormalizeModels:
    def test_trims_and_dedupes(self):
        assert normalize_models(["A ", " A", "B", "", "   ", "B\0"]) == ["A", "B"]

    def test_keeps_first_seen_order(self):
        assert normalize_models(["Z", "A", "Z"]) == ["Z", "A"]

    def test_case_sensitive(self):
        assert normalize_models(["abc", "ABC"]) == ["abc", "ABC"]

    def test_missing_models(self, sample_db: dict):
        doc = _doc(sample_db)
        assert missing_models(doc, ["HAT5300-8T", "NEW1", "NEW1 "]) == ["NEW1"]


# ── Reconciling ─────────────────────────────────────────────────────


class TestReconcile:
    def test_adds_missing_with_default_rule(self):
        doc = _doc({ENTRIES_FIELD: {"WD40EFRX": {"x": 1}}})
        result = reconcile(doc, ["WD40EFRX", "ST4000", " ST4000 "])
        assert result.changed
        assert result.added == ["ST4000"]
        assert doc.entries == {"WD40EFRX": {"x": 1}, "ST4000": default_rule()}

    def test_returns_same_document(self):
        doc = _doc({ENTRIES_FIELD: {}})
        assert reconcile(doc, ["A"]).document is doc

    def test_empty_detected_set(self, sample_db: dict):
        doc = _doc(sample_db)
        result = reconcile(doc, [])
        assert not result.changed
        assert doc.to_dict() == sample_db

    def test_all_present(self, sample_db: dict):
        doc = _doc(sample_db)
        result = reconcile(doc, ["HAT5300-8T", "WD40EFRX-68N32N0  "])
        assert not result.changed
        assert doc.to_dict() == sample_db

    def test_existing_entries_untouched(self, sample_db: dict):
        doc = _doc(sample_db)
        before = copy.deepcopy(doc.entries)
        reconcile(doc, ["NEW-A", "HAT5300-8T", "NEW-B"])
        for key, value in before.items():
            assert doc.entries[key] == value

    def test_superset_of_detected(self, sample_db: dict):
        detected = ["  X1", "X2\0", "HAT5300-8T", "", "X1"]
        doc = reconcile(_doc(sample_db), detected).document
        assert set(normalize_models(detected)) <= set(doc.entries)

    def test_siblings_preserved(self, sample_db: dict):
        doc = reconcile(_doc(sample_db), ["NEW"]).document
        out = doc.to_dict()
        assert out["nas_model"] == "DS920+"
        assert out["success"] == 1
        assert out["version_cycle"] == "2024-03"

    def test_idempotent(self, sample_db: dict):
        detected = ["NEW-A", "NEW-B", "HAT5300-8T"]
        first = reconcile(_doc(sample_db), detected).document
        snapshot = serialize_document(first)
        second = reconcile(first, detected)
        assert not second.changed
        assert serialize_document(second.document) == snapshot

    def test_order_does_not_change_key_set(self, sample_db: dict):
        a = reconcile(_doc(sample_db), ["P", "Q", "R"]).document
        b = reconcile(_doc(sample_db), ["R", "P", "Q"]).document
        assert set(a.entries) == set(b.entries)

    def test_whitespace_inside_key_is_significant(self):
        doc = _doc({ENTRIES_FIELD: {"WD 40": {}}})
        result = reconcile(doc, ["WD  40"])
        assert result.added == ["WD  40"]

    def test_added_rules_are_independent(self):
        doc = _doc({ENTRIES_FIELD: {}})
        reconcile(doc, ["A", "B"])
        assert doc.entries["A"] is not doc.entries["B"]
