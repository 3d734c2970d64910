"""Test helpers (small, reusable builders).

Keep this file tiny and purpose-built: catalog entries and stream lines are
built here so suites do not grow one-off JSON literals.
"""

from __future__ import annotations

import json
from typing import Any


def catalog_entry(
    model_id: str,
    *params: str,
    max_completion_tokens: int | None = None,
    internal_reasoning: str | None = None,
) -> dict[str, Any]:
    """Build a ``/models`` catalog entry declaring *params*."""
    entry: dict[str, Any] = {
        "id": model_id,
        "name": model_id.split("/")[-1],
        "supported_parameters": list(params),
        "top_provider": {"max_completion_tokens": max_completion_tokens},
        "pricing": {"prompt": "0.000003", "completion": "0.000015"},
        "architecture": {"input_modalities": ["text"], "output_modalities": ["text"]},
    }
    if internal_reasoning is not None:
        entry["pricing"]["internal_reasoning"] = internal_reasoning
    return entry


def data_line(payload: Any) -> str:
    """Frame *payload* as one ``data:`` event-stream line."""
    return f"data: {json.dumps(payload)}"


def delta_chunk(**delta: Any) -> dict[str, Any]:
    return {"id": "gen-1", "choices": [{"index": 0, "delta": delta}]}
