"""Utility functions for the game blueprint."""

from __future__ import annotations

import re
from typing import Any

_MOBILE_NOISE = re.compile(r"[\s\-+()]")


def normalize_mobile(mobile: str) -> str:
    """Reduce a contact number to its last ten digits, dropping a leading 91."""
    cleaned = _MOBILE_NOISE.sub("", mobile)
    if cleaned.startswith("91"):
        cleaned = cleaned[2:]
    return cleaned[-10:]


def describe_matches(matches: list[Any]) -> list[str]:
    """Render matches as short strings for log lines, e.g. ``R2#1 A-C (winners)``."""
    lines = []
    for match in matches:
        label = f"R{match.round_number}#{match.match_number} {match.team_a.letter}-{match.team_b.letter}"
        if match.bracket_type:
            label += f" ({match.bracket_type})"
        if match.is_bye:
            label += " bye"
        lines.append(label)
    return lines
