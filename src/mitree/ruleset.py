"""Data classes for representing decision rules extracted from trees."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Union

NOMINAL = "nominal"
NUMERIC = "numeric"

LESS_THAN = "<"
GREATER_EQUAL = ">="


@dataclass(frozen=True)
class NominalEquals:
    """A nominal test, e.g. ``outlook = sunny``."""

    attribute: str
    value: str
    kind: str = field(default=NOMINAL, init=False)

    def __str__(self) -> str:
        return f"{self.attribute} = {self.value}"


@dataclass(frozen=True)
class NumericRange:
    """The tightened interval of a numeric attribute along one path.

    ``operator`` and ``boundary`` are those of the most recent comparison on
    the attribute; ``effective_min``/``effective_max`` is the interval left
    after every comparison on the path.
    """

    attribute: str
    operator: str  # "<" or ">="
    boundary: float
    effective_min: float
    effective_max: float
    kind: str = field(default=NUMERIC, init=False)

    @property
    def midpoint(self) -> float:
        return (self.effective_min + self.effective_max) / 2

    def __str__(self) -> str:
        return (
            f"{self.attribute} in [{self.effective_min:.4f}, {self.effective_max:.4f}]"
        )


Condition = Union[NominalEquals, NumericRange]


@dataclass(frozen=True)
class DecisionRule:
    """An IF-THEN rule read from one root-to-leaf path.

    Parameters
    ----------
    conditions : tuple of Condition
        The conjunction of tests leading to the leaf, at most one per
        attribute.
    prediction : str
        The predicted class value (the formatted mean for numeric classes).
    weight : float
        Sum of the training weight that reached the leaf.
    error : float
        Weight of the leaf's instances not of the predicted class.
    prediction_value : float or None
        Leaf mean (numeric class only).
    """

    conditions: tuple[Condition, ...]
    prediction: str
    weight: float
    error: float
    prediction_value: Optional[float] = None

    @property
    def correct(self) -> float:
        return self.weight - self.error

    @property
    def has_numeric_condition(self) -> bool:
        return any(c.kind == NUMERIC for c in self.conditions)

    def condition_for(self, attribute: str) -> Optional[Condition]:
        for cond in self.conditions:
            if cond.attribute == attribute:
                return cond
        return None

    def __str__(self) -> str:
        if self.conditions:
            antecedent = " AND ".join(str(c) for c in self.conditions)
        else:
            antecedent = "TRUE"
        return (
            f"IF {antecedent} THEN class = {self.prediction}"
            f"  [weight={self.weight:.2f}, error={self.error:.2f}]"
        )


@dataclass(frozen=True)
class RuleSet:
    """An ordered collection of rules read from one tree."""

    rules: tuple[DecisionRule, ...]
    attributes: tuple[str, ...]
    class_values: tuple[str, ...]

    @property
    def num_rules(self) -> int:
        return len(self.rules)

    @property
    def avg_conditions(self) -> float:
        if not self.rules:
            return 0.0
        return sum(len(r.conditions) for r in self.rules) / len(self.rules)

    @property
    def max_conditions(self) -> int:
        if not self.rules:
            return 0
        return max(len(r.conditions) for r in self.rules)

    @property
    def total_error(self) -> float:
        """Summed leaf error of every rule (the tree's training error)."""
        return sum(r.error for r in self.rules)

    def filter_by_class(self, class_value: str) -> RuleSet:
        """Return a new RuleSet containing only rules predicting *class_value*."""
        filtered = tuple(r for r in self.rules if r.prediction == class_value)
        return RuleSet(
            rules=filtered,
            attributes=self.attributes,
            class_values=self.class_values,
        )

    def to_text(self) -> str:
        """Render every rule as a human-readable string."""
        lines: list[str] = []
        for i, rule in enumerate(self.rules, 1):
            lines.append(f"Rule {i}: {rule}")
        return "\n".join(lines)

    def __str__(self) -> str:
        return self.to_text()
