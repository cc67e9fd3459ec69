"""Synthesis of the meta training set from scored decision rules."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from logging import getLogger
from typing import Iterator, Optional, Sequence

import numpy as np
import pandas as pd

from .contingency import LAPLACE, NOVELTY, PRECISION, SATISFACTION, ScoredRule
from .dataset import Dataset
from .exceptions import ConfigurationError
from .ruleset import NUMERIC

logger = getLogger(__name__)


class NumericStrategy(str, Enum):
    """How a numeric interval becomes concrete synthetic values."""

    INTERVAL = "I"  # one row at the interval minima, one at the maxima
    AVERAGE = "A"   # one row at the interval midpoints

    @classmethod
    def parse(cls, value) -> NumericStrategy:
        return _parse_enum(cls, value, "numeric strategy")


class WeightStrategy(str, Enum):
    """Which weighted rule metric becomes the synthetic row weight."""

    PRECISION = "P"
    LAPLACE = "L"
    NOVELTY = "N"
    SATISFACTION = "S"

    @classmethod
    def parse(cls, value) -> WeightStrategy:
        return _parse_enum(cls, value, "weight strategy")

    @property
    def metric(self) -> str:
        return _METRIC_BY_STRATEGY[self]


_METRIC_BY_STRATEGY = {
    WeightStrategy.PRECISION: PRECISION,
    WeightStrategy.LAPLACE: LAPLACE,
    WeightStrategy.NOVELTY: NOVELTY,
    WeightStrategy.SATISFACTION: SATISFACTION,
}


def _parse_enum(enum_cls, value, label: str):
    if isinstance(value, enum_cls):
        return value
    if isinstance(value, str):
        text = value.strip()
        for member in enum_cls:
            if text.upper() == member.value or text.upper() == member.name:
                return member
    codes = ", ".join(f"{m.value!r} ({m.name.lower()})" for m in enum_cls)
    raise ConfigurationError(f"unknown {label} {value!r}; expected one of {codes}")


# Reasons recorded for rules that produce no meta rows.
SKIP_NOVELTY = "novelty_not_positive"
SKIP_SATISFACTION = "satisfaction_not_positive"
SKIP_WEIGHT = "non_positive_weight"
SKIP_UNDEFINED = "undefined_metric"


@dataclass(frozen=True)
class MetaRow:
    """One synthetic training row.

    ``values`` holds ``(attribute, value)`` pairs in schema order; ``None``
    marks a missing value.
    """

    values: tuple[tuple[str, object], ...]
    class_value: str
    weight: float

    def as_dict(self) -> dict:
        return dict(self.values)


@dataclass(frozen=True)
class SkippedRule:
    """A rule excluded from the meta set, with the reason."""

    index: int
    rule: ScoredRule
    reason: str


@dataclass(frozen=True)
class MetaBuildResult:
    rows: tuple[MetaRow, ...]
    skipped: tuple[SkippedRule, ...]

    def __iter__(self) -> Iterator[MetaRow]:
        return iter(self.rows)

    def __len__(self) -> int:
        return len(self.rows)


class MetaDatasetBuilder:
    """Turns scored rules into meta rows.

    Parameters
    ----------
    attributes : sequence of str
        Attribute names of the original dataset, in schema order.
    numeric_strategy : NumericStrategy or str
        ``"I"`` (interval) or ``"A"`` (average).
    weight_strategy : WeightStrategy or str
        ``"P"``, ``"L"``, ``"N"`` or ``"S"``.
    """

    def __init__(
        self,
        attributes: Sequence[str],
        numeric_strategy=NumericStrategy.INTERVAL,
        weight_strategy=WeightStrategy.PRECISION,
    ) -> None:
        self.attributes = tuple(attributes)
        self.numeric_strategy = NumericStrategy.parse(numeric_strategy)
        self.weight_strategy = WeightStrategy.parse(weight_strategy)

    def build(self, scored_rules: Sequence[ScoredRule]) -> tuple[MetaRow, ...]:
        return self.build_report(scored_rules).rows

    def build_report(self, scored_rules: Sequence[ScoredRule]) -> MetaBuildResult:
        """Build the rows and record every rule that produced none."""
        rows: list[MetaRow] = []
        skipped: list[SkippedRule] = []

        for index, scored in enumerate(scored_rules):
            reason = self._skip_reason(scored)
            if reason is not None:
                logger.debug("Skipping rule %d (%s): %s", index, reason, scored.rule)
                skipped.append(SkippedRule(index, scored, reason))
                continue
            rows.extend(self._rows_for(scored))

        return MetaBuildResult(rows=tuple(rows), skipped=tuple(skipped))

    def _skip_reason(self, scored: ScoredRule) -> Optional[str]:
        metrics = scored.metrics
        strategy = self.weight_strategy

        if strategy is WeightStrategy.NOVELTY:
            if metrics.novelty is None:
                return SKIP_UNDEFINED
            if metrics.novelty <= 0:
                return SKIP_NOVELTY
        if strategy is WeightStrategy.SATISFACTION:
            if metrics.satisfaction is None:
                return SKIP_UNDEFINED
            if metrics.satisfaction <= 0:
                return SKIP_SATISFACTION

        if scored.rule.weight <= 0:
            return SKIP_WEIGHT

        if metrics.weighted(strategy.metric) is None:
            return SKIP_UNDEFINED
        return None

    def _rows_for(self, scored: ScoredRule) -> list[MetaRow]:
        rule = scored.rule
        weight = scored.metrics.weighted(self.weight_strategy.metric)

        if not rule.has_numeric_condition:
            return [self._row(rule, weight)]

        if self.numeric_strategy is NumericStrategy.AVERAGE:
            return [self._row(rule, weight, "midpoint")]

        half = weight / 2
        return [
            self._row(rule, half, "effective_min"),
            self._row(rule, half, "effective_max"),
        ]

    def _row(self, rule, weight: float, numeric_field: str = "midpoint") -> MetaRow:
        values = []
        for attribute in self.attributes:
            cond = rule.condition_for(attribute)
            if cond is None:
                values.append((attribute, None))
            elif cond.kind == NUMERIC:
                values.append((attribute, float(getattr(cond, numeric_field))))
            else:
                values.append((attribute, cond.value))
        return MetaRow(values=tuple(values), class_value=rule.prediction, weight=weight)


def meta_rows_to_dataset(rows: Sequence[MetaRow], template: Dataset) -> Dataset:
    """Pack meta rows into a :class:`Dataset` with *template*'s schema."""
    columns = {attribute: [] for attribute in template.attributes}
    for row in rows:
        for attribute, value in row.values:
            columns[attribute].append(value)

    frame = pd.DataFrame(columns, columns=list(template.attributes))
    for attribute in template.numeric_attributes:
        frame[attribute] = pd.to_numeric(frame[attribute], errors="coerce").astype(float)
    for attribute in template.nominal_attributes:
        frame[attribute] = frame[attribute].astype(object)

    return template.with_rows(
        frame,
        [row.class_value for row in rows],
        np.array([row.weight for row in rows], dtype=float),
    )
