"""Tests for indication de-duplication and relation flattening."""

from __future__ import annotations

import logging

from builders import make_report
from gasdash.services.aggregation.dedup import dedupe_indications, duplicate_gap_ids, indication_key
from gasdash.services.aggregation.normalize import normalize_report
from gasdash.services.aggregation.relations import flatten_relations


def test_unique_count_excludes_keyless_records():
    indications = [{"lisa_id": "A"}, {"lisa_id": "A"}, {"lisa_id": "B"}, {"lisa_name": "C"}, {}]
    count, unique = dedupe_indications(indications)
    assert count == 3
    assert {indication_key(i) for i in unique} == {"A", "B", "C"}


def test_object_and_list_ids_are_compared_by_value():
    indications = [{"lisa_id": {"code": "L1"}}, {"lisa_id": {"code": "L1"}}, {"lisa_id": ["L2"]}]
    count, unique = dedupe_indications(indications)
    assert count == 2
    assert unique[0] is indications[1]
    assert duplicate_gap_ids([{"gap_id": {"a": 1}}, {"gap_id": {"a": 1}}, {"gap_id": ["b"]}]) == (3, 2)


def test_last_write_wins():
    _, unique = dedupe_indications([{"lisa_id": "A", "v": 1}, {"lisa_id": "A", "v": 2}])
    assert unique == [{"lisa_id": "A", "v": 2}]


def test_empty_id_falls_back_to_name():
    assert indication_key({"lisa_id": "", "lisa_name": "N-1"}) == "N-1"
    assert indication_key({"lisa_id": None, "lisa_name": ""}) is None


def test_duplicate_gap_ids_uses_id_fallback():
    assert duplicate_gap_ids([{"gap_id": "g1"}, {"id": "g1"}, {"gap_id": "g2"}]) == (3, 2)


def test_flatten_counts_and_raw_indications():
    raw = make_report(
        "r1",
        indications=[{"lisa_id": "A"}, {"lisa_id": "A"}, {"lisa_id": "B"}, {"lisa_name": "C"}, {}],
        gaps=[{"gap_id": "g1"}, {"gap_id": "g2"}],
    )
    report = flatten_relations(normalize_report(raw), include_unit_desc=True)
    assert report.has_surveys is True
    assert report.surveyor_unit_desc == "Vehicle #1"
    assert report.indications_count == 5
    assert report.unique_indications_count == 3
    assert report.field_of_view_gaps_count == 2
    assert report.report_final is True


def test_unit_desc_not_requested_is_none():
    report = flatten_relations(normalize_report(make_report("r1")), include_unit_desc=False)
    assert report.surveyor_unit_desc is None


def test_unit_desc_defaults_to_na():
    no_sessions = flatten_relations(normalize_report(make_report("r1", sessions=False)), include_unit_desc=True)
    blank_unit = flatten_relations(normalize_report(make_report("r2", vehicle=None)), include_unit_desc=True)
    assert no_sessions.surveyor_unit_desc == "n/a"
    assert no_sessions.has_surveys is False
    assert blank_unit.surveyor_unit_desc == "n/a"


def test_direct_driving_sessions_field_counts_as_surveys():
    raw = make_report("r1", sessions=False, driving_sessions=["ds1"])
    assert flatten_relations(normalize_report(raw), include_unit_desc=False).has_surveys is True


def test_missing_expand_is_tolerated():
    report = flatten_relations(normalize_report({"id": "r1"}), include_unit_desc=True)
    assert report.indications == []
    assert report.indications_count == 0
    assert report.field_of_view_gaps_count == 0
    assert report.has_surveys is False


def test_non_list_relations_are_ignored():
    raw = {"id": "r1", "expand": {"indications_via_report": {"lisa_id": "A"}, "field_of_view_gaps": "x"}}
    report = flatten_relations(normalize_report(raw), include_unit_desc=False)
    assert report.indications_count == 0
    assert report.field_of_view_gaps_count == 0


def test_relation_payloads_not_mutated():
    indications = [{"lisa_id": "A"}]
    raw = make_report("r1", indications=indications)
    flatten_relations(normalize_report(raw), include_unit_desc=True)
    assert indications == [{"lisa_id": "A"}]


def test_duplicate_gap_ids_logged(caplog):
    raw = make_report("r1", gaps=[{"gap_id": "g1"}, {"gap_id": "g1"}])
    with caplog.at_level(logging.WARNING, logger="gasdash.services.aggregation.relations"):
        report = flatten_relations(normalize_report(raw), include_unit_desc=False)
    assert report.field_of_view_gaps_count == 2
    assert "potential duplicates" in caplog.text


def test_extra_fields_kept_in_output():
    report = flatten_relations(normalize_report(make_report("r1", labels=["north"])), include_unit_desc=False)
    dumped = report.model_dump(by_alias=True)
    assert dumped["labels"] == ["north"]
    assert dumped["indicationsCount"] == 0
    assert "expand" in dumped


def test_indications_count_includes_non_object_entries():
    raw = make_report("r1", indications=[{"lisa_id": "A"}, "L-7", None])
    report = flatten_relations(normalize_report(raw), include_unit_desc=False)
    assert report.indications_count == 3
    assert report.unique_indications_count == 1
    assert report.indications == [{"lisa_id": "A"}]
