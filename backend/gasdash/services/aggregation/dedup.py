# backend/gasdash/services/aggregation/dedup.py
from __future__ import annotations

import json
from typing import Any, Hashable, Iterable, Mapping, Optional


def _hashable(key: Any) -> Hashable:
    # オブジェクト/配列の ID は JSON 文字列で比較する
    if isinstance(key, (dict, list)):
        return json.dumps(key, sort_keys=True, default=str)
    return key


def indication_key(indication: Mapping[str, Any]) -> Optional[Hashable]:
    # lisa_id 優先、無ければ lisa_name
    key = indication.get("lisa_id") or indication.get("lisa_name") or None
    return _hashable(key) if key is not None else None


def dedupe_indications(indications: Iterable[Mapping[str, Any]]) -> tuple[int, list]:
    """Collapse indications sharing a key; later records win.

    Records without ``lisa_id``/``lisa_name`` are dropped from the result.
    """
    unique: dict = {}
    for indication in indications:
        key = indication_key(indication)
        if key:
            unique[key] = indication
    return len(unique), list(unique.values())


def duplicate_gap_ids(gaps: Iterable[Mapping[str, Any]]) -> tuple[int, int]:
    """Return (total ids, distinct ids) of a report's gaps, for diagnostics."""
    ids = [_hashable(gap.get("gap_id") or gap.get("id")) for gap in gaps]
    return len(ids), len(set(ids))
