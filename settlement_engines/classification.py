"""
settlement_engines.classification -- Assign agents to subclubs from free text.

Responsibility:
    Resolve the subclub an imported agent belongs to, from its platform id
    and its display name, through an ordered list of rules.

Architecture position:
    Engines -- pure, zero I/O.  Rules are built from the classification
    section of the engine configuration (``Classifier.from_config``).

Invariants enforced:
    - Rules are evaluated in order; the first match wins, so later rules
      may overlap earlier ones without ambiguity.
    - Resolution order: agent-id override, manual name link, blank-name
      guard, prefix rules (after stripping a leading ``AG.``/``AG ``),
      contains rules, then the default category.
    - An unmatched agent resolves to the default category (``"?"``), which
      the grouping layer buckets under ``OUTROS``.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from settlement_kernel.logging_config import get_logger

logger = get_logger("engines.classification")

DEFAULT_CATEGORY = "?"

_AGENT_PREFIX = re.compile(r"^AG[.\s]+", re.IGNORECASE)


@dataclass(frozen=True)
class AgentRef:
    """What the classifier sees of an agent."""

    agent_name: str = ""
    agent_id: str = ""

    @property
    def upper_name(self) -> str:
        return (self.agent_name or "").upper().strip()

    @property
    def bare_name(self) -> str:
        """Upper-cased name without a leading ``AG.`` marker."""
        return _AGENT_PREFIX.sub("", self.upper_name).strip()


@dataclass(frozen=True)
class ClassificationRule:
    """One ``(predicate, category)`` pair."""

    name: str
    predicate: Callable[[AgentRef], bool]
    category: str


def _override_rule(agent_id: str, category: str) -> ClassificationRule:
    return ClassificationRule(
        name=f"override:{agent_id}",
        predicate=lambda ref: bool(ref.agent_id) and ref.agent_id == agent_id,
        category=category,
    )


def _manual_link_rule(agent_name: str, category: str) -> ClassificationRule:
    key = agent_name.upper().strip()
    return ClassificationRule(
        name=f"link:{key}",
        predicate=lambda ref: ref.upper_name == key,
        category=category,
    )


def _prefix_rule(prefix: str, category: str) -> ClassificationRule:
    key = prefix.upper()
    return ClassificationRule(
        name=f"prefix:{key}",
        predicate=lambda ref: ref.bare_name.startswith(key),
        category=category,
    )


def _contains_rule(needle: str, category: str) -> ClassificationRule:
    key = needle.upper()
    return ClassificationRule(
        name=f"contains:{key}",
        predicate=lambda ref: key in ref.bare_name,
        category=category,
    )


def build_rules(
    agent_overrides: Mapping[str, str] | None = None,
    manual_links: Mapping[str, str] | None = None,
    prefix_rules: Iterable[tuple[Sequence[str], str]] = (),
    contains_rules: Iterable[tuple[str, str]] = (),
    default_category: str = DEFAULT_CATEGORY,
) -> list[ClassificationRule]:
    """Expand the configuration tables into the ordered rule list."""
    rules: list[ClassificationRule] = []
    for agent_id, category in (agent_overrides or {}).items():
        if category:
            rules.append(_override_rule(str(agent_id), category))
    for agent_name, category in (manual_links or {}).items():
        if category:
            rules.append(_manual_link_rule(agent_name, category))
    rules.append(ClassificationRule(
        name="blank_name",
        predicate=lambda ref: ref.bare_name in ("", "NONE"),
        category=default_category,
    ))
    for prefixes, category in prefix_rules:
        for prefix in prefixes:
            rules.append(_prefix_rule(prefix, category))
    for needle, category in contains_rules:
        rules.append(_contains_rule(needle, category))
    return rules


class Classifier:
    """Ordered rule list with a default fallback."""

    def __init__(
        self,
        rules: Sequence[ClassificationRule],
        default_category: str = DEFAULT_CATEGORY,
    ) -> None:
        self._rules = tuple(rules)
        self.default_category = default_category

    @classmethod
    def from_config(cls, config: Any) -> Classifier:
        """Build from a ``ClassificationConfig``-shaped object."""
        rules = build_rules(
            agent_overrides=config.agent_overrides,
            manual_links=config.manual_links,
            prefix_rules=[(r.prefixes, r.category) for r in config.prefix_rules],
            contains_rules=[(r.needle, r.category) for r in config.contains_rules],
            default_category=config.default_category,
        )
        return cls(rules, config.default_category)

    @property
    def rules(self) -> tuple[ClassificationRule, ...]:
        return self._rules

    def match(self, agent_name: str | None, agent_id: str | None = None) -> ClassificationRule | None:
        ref = AgentRef(agent_name or "", str(agent_id or ""))
        for rule in self._rules:
            if rule.predicate(ref):
                return rule
        return None

    def classify(self, agent_name: str | None, agent_id: str | None = None) -> str:
        rule = self.match(agent_name, agent_id)
        if rule is None:
            logger.debug("agent_unclassified", extra={"agent_name": agent_name})
            return self.default_category
        return rule.category
