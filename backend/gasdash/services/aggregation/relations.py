# backend/gasdash/services/aggregation/relations.py
from __future__ import annotations

import logging
from typing import Any, Mapping

from gasdash.schemas.report import Report
from gasdash.services.aggregation.dedup import dedupe_indications, duplicate_gap_ids

LOGGER = logging.getLogger(__name__)

UNKNOWN_UNIT = "n/a"


def _non_empty_list(value: Any) -> bool:
    return isinstance(value, list) and len(value) > 0


def _relation(record: Mapping[str, Any], name: str) -> list:
    expand = record.get("expand")
    if not isinstance(expand, Mapping):
        return []
    value = expand.get(name)
    return value if isinstance(value, list) else []


def has_driving_sessions(record: Mapping[str, Any]) -> bool:
    return bool(_relation(record, "driving_sessions")) or _non_empty_list(record.get("driving_sessions"))


def unit_description(record: Mapping[str, Any]) -> str:
    sessions = _relation(record, "driving_sessions")
    if not sessions or not isinstance(sessions[0], Mapping):
        return UNKNOWN_UNIT
    return sessions[0].get("surveyor_unit_desc") or UNKNOWN_UNIT


def flatten_relations(record: Mapping[str, Any], include_unit_desc: bool) -> Report:
    """Turn the expanded relations of a normalized record into flat fields."""
    related = _relation(record, "indications_via_report")
    indications = [i for i in related if isinstance(i, Mapping)]
    unique_count, _ = dedupe_indications(indications)

    gaps = _relation(record, "field_of_view_gaps")
    name = record.get("report_name")
    if gaps:
        LOGGER.debug("Report %s: %d gaps found", name, len(gaps))
        total_ids, unique_ids = duplicate_gap_ids(g for g in gaps if isinstance(g, Mapping))
        if total_ids != unique_ids:
            LOGGER.warning(
                "Report %s: found %d gaps but only %d unique gap ids, potential duplicates",
                name, total_ids, unique_ids,
            )

    data = dict(record)
    data.update(
        has_surveys=has_driving_sessions(record),
        surveyor_unit_desc=unit_description(record) if include_unit_desc else None,
        indications=[dict(i) for i in indications],
        indicationsCount=len(related),
        uniqueIndicationsCount=unique_count,
        fieldOfViewGapsCount=len(gaps),
    )
    return Report.model_validate(data)
