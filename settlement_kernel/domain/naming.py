"""Canonical name normalization for matching agents and subclubs by name."""

from __future__ import annotations

import re
import unicodedata

_NONE_NAME = re.compile(r"^(none|null|undefined)$", re.IGNORECASE)

# Synthetic buckets for rows whose hierarchy reference cannot be resolved.
NO_AGENT_BUCKET = "(sem agente)"
UNASSIGNED_SUBCLUB = "OUTROS"


def norm_name(value: str | None) -> str:
    """Lowercase and strip accents (NFD, combining marks removed)."""
    decomposed = unicodedata.normalize("NFD", (value or "").lower())
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def is_blank_reference(value: str | None) -> bool:
    """True for empty, ``"0"``, ``none``, ``null`` or ``undefined`` references."""
    text = (value or "").strip()
    return not text or text == "0" or bool(_NONE_NAME.match(text))


def agent_bucket(agent_name: str | None) -> str:
    """Agent grouping key; unresolvable agents go to the no-agent bucket."""
    if is_blank_reference(agent_name):
        return NO_AGENT_BUCKET
    return (agent_name or "").strip()


def subclub_bucket(subclub_name: str | None) -> str:
    if is_blank_reference(subclub_name) or (subclub_name or "").strip() == "?":
        return UNASSIGNED_SUBCLUB
    return (subclub_name or "").strip()
