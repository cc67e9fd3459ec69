"""Rule-quality statistics from the 2x2 contingency table of a rule.

For a rule predicting class ``C`` the table splits the training weight by
*covered by the rule* (L / not L) and *belongs to C* (R / not R)::

                 R        not R
    L            a (LR)   b (L_R)      l  = a + b
    not L        c (_LR)  d (_L_R)     _l = c + d
                 r        _r

with ``r = a + c`` and ``_r = b + d``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Optional

from .exceptions import ContractViolation, DegenerateRuleError
from .ruleset import DecisionRule

PRECISION = "precision"
LAPLACE = "laplace"
NOVELTY = "novelty"
SATISFACTION = "satisfaction"


@dataclass(frozen=True)
class ContingencyMatrix:
    """Weights of the four cells of a rule's contingency table."""

    LR: float
    L_R: float
    _LR: float
    _L_R: float
    total_weight: float
    num_classes: int

    @classmethod
    def from_rule(
        cls,
        rule: DecisionRule,
        class_weights: Mapping[str, float],
        total_weight: float,
        num_classes: int,
    ) -> ContingencyMatrix:
        try:
            weight_of_class = float(class_weights[rule.prediction])
        except KeyError:
            raise ContractViolation(
                f"rule predicts {rule.prediction!r}, which is not a class value of "
                f"the dataset"
            ) from None
        return cls(
            LR=rule.correct,
            L_R=rule.error,
            _LR=weight_of_class - rule.correct,
            _L_R=(total_weight - weight_of_class) - rule.error,
            total_weight=float(total_weight),
            num_classes=int(num_classes),
        )

    @property
    def l(self) -> float:
        return self.LR + self.L_R

    @property
    def _l(self) -> float:
        return self._LR + self._L_R

    @property
    def r(self) -> float:
        return self.LR + self._LR

    @property
    def _r(self) -> float:
        return self.L_R + self._L_R

    def precision(self) -> float:
        if self.l == 0:
            raise DegenerateRuleError(PRECISION, "the rule covers no weight (l == 0)")
        return self.LR / self.l

    def laplace(self) -> float:
        return (self.LR + 1) / (self.l + self.num_classes)

    def novelty(self) -> float:
        if self.total_weight == 0:
            raise DegenerateRuleError(NOVELTY, "the dataset has no weight")
        total = self.total_weight
        return self.LR / total - (self.l * self.r) / (total * total)

    def satisfaction(self) -> float:
        if self.l == 0:
            raise DegenerateRuleError(SATISFACTION, "the rule covers no weight (l == 0)")
        if self._r == 0:
            raise DegenerateRuleError(
                SATISFACTION, "every instance belongs to the predicted class (b + d == 0)"
            )
        return 1 - (self.total_weight * self.L_R) / (self.l * self._r)


@dataclass(frozen=True)
class RuleMetrics:
    """Quality metrics of one rule and their weight-scaled variants.

    A metric is ``None`` when it is undefined for the rule; ``undefined``
    names each such metric with the reason.
    """

    matrix: ContingencyMatrix
    precision: Optional[float]
    laplace: Optional[float]
    novelty: Optional[float]
    satisfaction: Optional[float]
    weight_precision: Optional[float]
    weight_laplace: Optional[float]
    weight_novelty: Optional[float]
    weight_satisfaction: Optional[float]
    undefined: tuple[tuple[str, str], ...] = ()

    def metric(self, name: str) -> Optional[float]:
        return getattr(self, name)

    def weighted(self, name: str) -> Optional[float]:
        return getattr(self, f"weight_{name}")


@dataclass(frozen=True)
class ScoredRule:
    """A decision rule together with its metrics."""

    rule: DecisionRule
    metrics: RuleMetrics

    def __str__(self) -> str:
        return str(self.rule)


def compute_metrics(
    rule: DecisionRule,
    class_weights: Mapping[str, float],
    total_weight: float,
    num_classes: int,
    *,
    novelty_scale: float = 1.0,
) -> RuleMetrics:
    """Score *rule* against the dataset-wide class weight totals.

    Parameters
    ----------
    rule : DecisionRule
        The rule to score.
    class_weights : mapping of str to float
        Training weight per class value.
    total_weight : float
        Training weight of the whole dataset.
    num_classes : int
        Number of class values.
    novelty_scale : float, default 1.0
        Extra factor applied to the weighted novelty.

    Returns
    -------
    RuleMetrics
    """
    matrix = ContingencyMatrix.from_rule(rule, class_weights, total_weight, num_classes)

    values: dict[str, Optional[float]] = {}
    undefined: list[tuple[str, str]] = []
    for name in (PRECISION, LAPLACE, NOVELTY, SATISFACTION):
        try:
            values[name] = getattr(matrix, name)()
        except DegenerateRuleError as exc:
            values[name] = None
            undefined.append((exc.metric, exc.reason))

    def scaled(value: Optional[float], factor: float = 1.0) -> Optional[float]:
        return None if value is None else rule.weight * value * factor

    return RuleMetrics(
        matrix=matrix,
        precision=values[PRECISION],
        laplace=values[LAPLACE],
        novelty=values[NOVELTY],
        satisfaction=values[SATISFACTION],
        weight_precision=scaled(values[PRECISION]),
        weight_laplace=scaled(values[LAPLACE]),
        weight_novelty=scaled(values[NOVELTY], novelty_scale),
        weight_satisfaction=scaled(values[SATISFACTION]),
        undefined=tuple(undefined),
    )


def score_rules(
    rules,
    class_weights: Mapping[str, float],
    total_weight: float,
    num_classes: int,
    *,
    novelty_scale: float = 1.0,
) -> list[ScoredRule]:
    """Score every rule of a tree, keeping their order."""
    return [
        ScoredRule(
            rule,
            compute_metrics(
                rule, class_weights, total_weight, num_classes,
                novelty_scale=novelty_scale,
            ),
        )
        for rule in rules
    ]
