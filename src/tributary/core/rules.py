"""
Rule evaluation: a condition checked on an external tick, plus an action.

Each tick evaluates the rules that are due. A failing condition or action is
recorded on its evaluation and never stops the other rules.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from tributary.exceptions import ConfigurationError, RuleError
from tributary.utils.logging import get_logger

if TYPE_CHECKING:
    from tributary.core.lineage import LineageQueryService

logger = get_logger("tributary.rules")


@dataclass
class RuleOutcome:
    """Result of checking a rule's condition."""

    triggered: bool
    message: str = ""
    details: dict[str, Any] = field(default_factory=dict)


Condition = Callable[["LineageQueryService"], "RuleOutcome | bool"]
Action = Callable[["Rule", RuleOutcome], None]


def log_action(rule: Rule, outcome: RuleOutcome) -> None:
    """Default action: log a warning."""
    logger.warning(f"Rule '{rule.name}' triggered: {outcome.message or rule.description or 'condition met'}")


@dataclass
class Rule:
    """A named condition/action pair evaluated at most every ``every_s`` seconds."""

    name: str
    condition: Condition
    action: Action = log_action
    every_s: float = 0.0
    description: str = ""


@dataclass
class RuleEvaluation:
    """Record of one rule evaluation."""

    rule_name: str
    evaluated_at: datetime
    triggered: bool = False
    message: str = ""
    error: str | None = None
    action_error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "rule_name": self.rule_name,
            "evaluated_at": self.evaluated_at.isoformat(),
            "triggered": self.triggered,
            "message": self.message,
            "error": self.error,
            "action_error": self.action_error,
        }


class RuleEngine:
    """Holds rules and evaluates the due ones on each :meth:`tick`."""

    def __init__(self, service: LineageQueryService) -> None:
        self.service = service
        self._rules: dict[str, Rule] = {}
        self._last_run: dict[str, float] = {}
        self.last_evaluations: dict[str, RuleEvaluation] = {}

    @property
    def rules(self) -> list[Rule]:
        return list(self._rules.values())

    def register(self, rule: Rule) -> None:
        if rule.name in self._rules:
            raise RuleError(f"Rule already registered: {rule.name}", details={"rule": rule.name})
        if rule.every_s < 0:
            raise RuleError(f"Rule '{rule.name}' every_s must not be negative", details={"rule": rule.name})
        self._rules[rule.name] = rule

    def unregister(self, name: str) -> None:
        self._rules.pop(name, None)
        self._last_run.pop(name, None)

    def tick(self, now: float | None = None) -> list[RuleEvaluation]:
        """
        Evaluate every rule that is due.

        Args:
            now: Monotonic timestamp in seconds (default: ``time.monotonic()``)

        Returns:
            Evaluations for the rules run on this tick
        """
        now = time.monotonic() if now is None else now
        evaluations = []
        for rule in list(self._rules.values()):
            last = self._last_run.get(rule.name)
            if last is not None and now - last < rule.every_s:
                continue
            self._last_run[rule.name] = now
            evaluation = self._evaluate(rule)
            self.last_evaluations[rule.name] = evaluation
            evaluations.append(evaluation)
        return evaluations

    def _evaluate(self, rule: Rule) -> RuleEvaluation:
        evaluation = RuleEvaluation(rule_name=rule.name, evaluated_at=datetime.now(UTC))
        try:
            outcome = rule.condition(self.service)
        except Exception as e:
            evaluation.error = str(e)
            logger.error(f"Rule '{rule.name}' condition failed: {e}")
            return evaluation

        if isinstance(outcome, bool):
            outcome = RuleOutcome(triggered=outcome)
        evaluation.triggered = outcome.triggered
        evaluation.message = outcome.message

        if outcome.triggered:
            try:
                rule.action(rule, outcome)
            except Exception as e:
                evaluation.action_error = str(e)
                logger.error(f"Rule '{rule.name}' action failed: {e}", exc_info=True)
        return evaluation


# --- Built-in conditions -----------------------------------------------------


def snapshot_staleness(max_age_s: float) -> Condition:
    """Triggers when the lineage snapshot is older than ``max_age_s`` or was never built."""

    def condition(service: LineageQueryService) -> RuleOutcome:
        status = service.snapshot_status()
        age = status["age_seconds"]
        if age is None:
            return RuleOutcome(True, "Lineage snapshot has never been built", status)
        if age > max_age_s:
            return RuleOutcome(True, f"Lineage snapshot is {age:.0f}s old (limit {max_age_s:.0f}s)", status)
        return RuleOutcome(False, details=status)

    return condition


def impact_threshold(object_id: str, threshold: int, max_depth: int | None = None) -> Condition:
    """Triggers when a change to ``object_id`` would reach ``threshold`` or more objects."""

    def condition(service: LineageQueryService) -> RuleOutcome:
        result = service.impact_of(object_id, max_depth)
        affected = len(result)
        if affected >= threshold:
            return RuleOutcome(
                True,
                f"{affected} object(s) downstream of {result.root_id} (threshold {threshold})",
                {"affected": result.object_ids()},
            )
        return RuleOutcome(False, details={"affected": result.object_ids()})

    return condition


def rules_from_config(rule_configs: list[dict[str, Any]]) -> list[Rule]:
    """
    Build rules from the ``rules:`` config section.

    Raises:
        ConfigurationError: If a rule entry is malformed or its type is unknown
    """
    rules = []
    for index, entry in enumerate(rule_configs or []):
        if not isinstance(entry, dict) or "name" not in entry or "type" not in entry:
            raise ConfigurationError(f"Rule #{index} must be a mapping with 'name' and 'type'")
        rule_type = entry["type"]
        try:
            if rule_type == "snapshot_staleness":
                condition = snapshot_staleness(float(entry["max_age_s"]))
            elif rule_type == "impact_threshold":
                condition = impact_threshold(
                    str(entry["object"]), int(entry["threshold"]), entry.get("max_depth")
                )
            else:
                raise ConfigurationError(
                    f"Rule '{entry['name']}' has unknown type {rule_type!r} "
                    f"(expected snapshot_staleness or impact_threshold)"
                )
        except (KeyError, TypeError, ValueError) as e:
            raise ConfigurationError(f"Rule '{entry['name']}' is missing or has an invalid setting: {e}") from e
        rules.append(
            Rule(
                name=str(entry["name"]),
                condition=condition,
                every_s=float(entry.get("every_s", 60)),
                description=str(entry.get("description", "")),
            )
        )
    return rules
