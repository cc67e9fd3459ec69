"""Diagnostics of a meta induction run: per-tree summaries, rule tables, run report."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, Optional, Sequence

import pandas as pd

from .contingency import LAPLACE, NOVELTY, PRECISION, SATISFACTION, ScoredRule
from .ruleset import NUMERIC

_METRICS = (PRECISION, LAPLACE, NOVELTY, SATISFACTION)


# ── Per-tree summary ────────────────────────────────────────────────────

@dataclass(frozen=True)
class TreeSummary:
    """What one forest tree contributed to the meta dataset.

    Attributes
    ----------
    index : int
        Position of the tree in the forest.
    num_rules : int
        Rules read from the tree (leaves with training weight).
    training_error : float
        Summed leaf error of the tree, i.e. its misclassified training weight.
    meta_rows : int
        Rows the tree's rules produced.
    skipped : dict
        Skipped-rule count per reason.
    """

    index: int
    num_rules: int
    training_error: float
    meta_rows: int
    skipped: Dict[str, int] = field(default_factory=dict)

    def __str__(self) -> str:
        text = (
            f"Tree {self.index}: {self.num_rules} rules, "
            f"error {self.training_error:.2f}, {self.meta_rows} meta rows"
        )
        if self.skipped:
            reasons = ", ".join(f"{k}={v}" for k, v in sorted(self.skipped.items()))
            text += f" (skipped: {reasons})"
        return text


# ── Decision table ──────────────────────────────────────────────────────

def format_rule_table(
    scored_rules: Sequence[ScoredRule],
    attributes: Sequence[str],
    *,
    decimals: int = 2,
) -> pd.DataFrame:
    """Lay scored rules out as a decision table.

    One row per rule: a cell per attribute (``[min,max]`` for numeric
    intervals, the value for nominal tests, ``?`` when the rule does not
    test the attribute), then the class, weight, error, correct weight, the
    four contingency cells and every metric with its weighted variant.
    Values are rounded to *decimals* for display only.

    Returns
    -------
    pandas.DataFrame
    """
    records = []
    for scored in scored_rules:
        rule, metrics = scored.rule, scored.metrics
        record: dict = {}
        for attribute in attributes:
            cond = rule.condition_for(attribute)
            if cond is None:
                record[attribute] = "?"
            elif cond.kind == NUMERIC:
                record[attribute] = (
                    f"[{cond.effective_min:.{decimals}f},{cond.effective_max:.{decimals}f}]"
                )
            else:
                record[attribute] = cond.value
        matrix = metrics.matrix
        record.update(
            {
                "class": rule.prediction,
                "weight": rule.weight,
                "error": rule.error,
                "correct": rule.correct,
                "LR": matrix.LR,
                "L_R": matrix.L_R,
                "_LR": matrix._LR,
                "_L_R": matrix._L_R,
            }
        )
        for name in _METRICS:
            record[name] = metrics.metric(name)
            record[f"weight_{name}"] = metrics.weighted(name)
        records.append(record)

    columns = list(attributes) + [
        "class", "weight", "error", "correct", "LR", "L_R", "_LR", "_L_R",
    ]
    for name in _METRICS:
        columns += [name, f"weight_{name}"]
    return pd.DataFrame.from_records(records, columns=columns).round(decimals)


# ── Run report ──────────────────────────────────────────────────────────

@dataclass(frozen=True)
class MetaInductionReport:
    """Quantitative summary of one meta induction run.

    Attributes
    ----------
    forest_size : int
        Trees grown.
    numeric_strategy, weight_strategy : str
        Strategy codes used to build the meta dataset.
    num_rules : int
        Rules extracted over the whole forest.
    skipped : dict
        Skipped-rule count per reason.
    meta_rows : int
        Rows of the meta dataset.
    meta_weight : float
        Summed weight of the meta dataset.
    leaves, nodes : int or None
        Size of the final tree (``None`` before it is trained).
    trees : tuple of TreeSummary
        Per-tree details.
    """

    forest_size: int
    numeric_strategy: str
    weight_strategy: str
    num_rules: int
    skipped: Dict[str, int]
    meta_rows: int
    meta_weight: float
    leaves: Optional[int] = None
    nodes: Optional[int] = None
    trees: tuple[TreeSummary, ...] = ()

    @property
    def num_skipped(self) -> int:
        return sum(self.skipped.values())

    @property
    def avg_forest_error(self) -> float:
        if not self.trees:
            return 0.0
        return sum(t.training_error for t in self.trees) / len(self.trees)

    def __str__(self) -> str:
        lines = [
            "=== Meta Induction Report ===",
            f"  Forest size: {self.forest_size}",
            f"  Numeric strategy: {self.numeric_strategy}",
            f"  Weight strategy: {self.weight_strategy}",
            f"  Rules extracted: {self.num_rules}",
            f"  Rules skipped: {self.num_skipped}",
        ]
        for reason, count in sorted(self.skipped.items()):
            lines.append(f"    {reason}: {count}")
        lines += [
            f"  Meta rows: {self.meta_rows}",
            f"  Meta weight: {self.meta_weight:.4f}",
            f"  Avg tree training error: {self.avg_forest_error:.4f}",
        ]
        if self.leaves is not None:
            lines.append(f"  Final tree leaves: {self.leaves}")
        if self.nodes is not None:
            lines.append(f"  Final tree nodes: {self.nodes}")
        return "\n".join(lines)


def count_reasons(skipped) -> Dict[str, int]:
    """Skipped-rule count per reason, from :class:`SkippedRule` records."""
    return dict(Counter(s.reason for s in skipped))
