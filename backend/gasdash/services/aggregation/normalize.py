# backend/gasdash/services/aggregation/normalize.py
"""Canonicalize raw ``gas_reports`` records.

Older records store ``report_final`` as 0/1, "0"/"1" or "true"/"false",
and numeric fields may be missing or arrive as strings. Everything here
is pure: the input mapping is never modified.
"""
from __future__ import annotations

import math
import re
from typing import Any, Mapping

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def coerce_report_final(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value == 1
    if isinstance(value, str):
        m = _LEADING_INT.match(value)
        if m:
            return int(m.group(1)) == 1
        return value.lower() == "true"
    return bool(value)


def coerce_number(value: Any, default: float = 0.0) -> float:
    if value is None or value == "":
        return default
    try:
        num = float(value)
    except (TypeError, ValueError):
        return default
    if not math.isfinite(num):
        return default
    return num


def format_duration(seconds: float) -> str:
    seconds = max(seconds, 0)
    hours = int(seconds // 3600)
    minutes = int((seconds % 3600) // 60)
    return f"{hours}h {minutes}m" if hours > 0 else f"{minutes}m"


def format_distance_km(meters: float) -> str:
    return f"{meters / 1000:.2f}"


def normalize_report(raw: Mapping[str, Any]) -> dict:
    item = dict(raw)

    if "report_final" in item:
        item["report_final"] = coerce_report_final(item["report_final"])

    if "total_breadcrumb_duration_seconds" in item:
        seconds = coerce_number(item["total_breadcrumb_duration_seconds"])
        item["total_duration_seconds"] = seconds
        item["formatted_duration"] = format_duration(seconds)
    else:
        item["total_duration_seconds"] = 0
        item["formatted_duration"] = "0m"

    if "total_breadcrumb_length_meters" in item:
        item["total_distance_km"] = format_distance_km(coerce_number(item["total_breadcrumb_length_meters"]))
    else:
        item["total_distance_km"] = "0.00"

    return item
