"""Depth-first flattening of a trained tree into weighted decision rules."""

from __future__ import annotations

from logging import getLogger
from typing import Mapping

import numpy as np

from .catalog import AttributeCatalog
from .dataset import AttributeKind, Dataset
from .exceptions import ContractViolation
from .ruleset import (
    GREATER_EQUAL,
    LESS_THAN,
    NOMINAL,
    NUMERIC,
    Condition,
    DecisionRule,
    NominalEquals,
    NumericRange,
    RuleSet,
)
from .tree import TreeNode

logger = getLogger(__name__)

_KIND_BY_SPLIT = {NOMINAL: AttributeKind.NOMINAL, NUMERIC: AttributeKind.NUMERIC}


class RuleExtractor:
    """Reads one rule per reached leaf of a tree.

    Parameters
    ----------
    catalog : AttributeCatalog
        Bounds of the numeric attributes of the original training data.
    dataset : Dataset
        The original training data; supplies attribute kinds, nominal value
        sets and the class-value order of leaf distributions.
    """

    def __init__(self, catalog: AttributeCatalog, dataset: Dataset) -> None:
        self.catalog = catalog
        self.dataset = dataset

    def extract(self, root: TreeNode) -> list[DecisionRule]:
        """Rules of *root* in depth-first, branch-ascending order.

        Leaves without training weight are dropped.
        """
        rules: list[DecisionRule] = []
        self._walk(root, (), {}, rules)
        kept = [rule for rule in rules if rule.weight > 0]
        if len(kept) < len(rules):
            logger.debug("Dropped %d unreached leaves", len(rules) - len(kept))
        return kept

    def extract_ruleset(self, root: TreeNode) -> RuleSet:
        return RuleSet(
            rules=tuple(self.extract(root)),
            attributes=self.dataset.attributes,
            class_values=self.dataset.class_values,
        )

    # ------------------------------------------------------------------
    # Traversal
    # ------------------------------------------------------------------

    def _walk(
        self,
        node: TreeNode,
        path: tuple[Condition, ...],
        excluded: Mapping[str, frozenset],
        rules: list[DecisionRule],
    ) -> None:
        if node.is_leaf:
            rules.append(self._leaf_rule(node, path))
            return

        self._check_split(node)

        if node.kind == NOMINAL:
            for value, child in zip(node.branch_values, node.children):
                if value is None:
                    self._walk_complement(node, child, path, excluded, rules)
                else:
                    self._walk(
                        child, _add_nominal(path, node.attribute, value), excluded, rules
                    )
        else:
            below, at_or_above = node.children
            self._walk(below, self._add_numeric(path, node, LESS_THAN), excluded, rules)
            self._walk(
                at_or_above, self._add_numeric(path, node, GREATER_EQUAL), excluded, rules
            )

    def _walk_complement(
        self,
        node: TreeNode,
        child: TreeNode,
        path: tuple[Condition, ...],
        excluded: Mapping[str, frozenset],
        rules: list[DecisionRule],
    ) -> None:
        """Descend a complement branch, fixing the attribute once one value is left."""
        attribute = node.attribute
        if any(cond.attribute == attribute for cond in path):
            self._walk(child, path, excluded, rules)
            return

        ruled_out = excluded.get(attribute, frozenset()) | {
            v for v in node.branch_values if v is not None
        }
        remaining = [
            v for v in self.dataset.nominal_values(attribute) if v not in ruled_out
        ]
        if len(remaining) == 1:
            self._walk(child, _add_nominal(path, attribute, remaining[0]), excluded, rules)
            return
        self._walk(child, path, {**excluded, attribute: ruled_out}, rules)

    def _check_split(self, node: TreeNode) -> None:
        if node.kind not in _KIND_BY_SPLIT:
            raise ContractViolation(f"unknown split kind {node.kind!r}")
        declared = self.dataset.kind_of(node.attribute)
        if declared is not _KIND_BY_SPLIT[node.kind]:
            raise ContractViolation(
                f"node splits {node.attribute!r} as {node.kind}, but the attribute "
                f"is {declared.value}"
            )
        if node.kind == NUMERIC:
            if len(node.children) != 2 or node.threshold is None:
                raise ContractViolation(
                    f"numeric split on {node.attribute!r} needs a threshold and "
                    f"exactly two children"
                )
            return
        if len(node.branch_values) != len(node.children):
            raise ContractViolation(
                f"nominal split on {node.attribute!r} has {len(node.children)} children "
                f"but {len(node.branch_values)} branch values"
            )
        allowed = set(self.dataset.nominal_values(node.attribute))
        for value in node.branch_values:
            if value is not None and value not in allowed:
                raise ContractViolation(
                    f"{value!r} is not a value of nominal attribute {node.attribute!r}"
                )

    def _add_numeric(
        self,
        path: tuple[Condition, ...],
        node: TreeNode,
        operator: str,
    ) -> tuple[Condition, ...]:
        summary = self.catalog.require(node.attribute)
        boundary = float(node.threshold)
        if summary.has_values:
            floor, ceiling = summary.min, summary.max
        else:
            floor = ceiling = boundary

        for i, cond in enumerate(path):
            if cond.attribute == node.attribute:
                lower, upper = cond.effective_min, cond.effective_max
                break
        else:
            i = None
            lower, upper = floor, ceiling

        clamped = min(max(boundary, floor), ceiling)
        if operator == LESS_THAN:
            upper = max(min(upper, clamped), lower)
        else:
            lower = min(max(lower, clamped), upper)

        cond = NumericRange(
            attribute=node.attribute,
            operator=operator,
            boundary=boundary,
            effective_min=lower,
            effective_max=upper,
        )
        if i is None:
            return path + (cond,)
        return path[:i] + (cond,) + path[i + 1:]

    # ------------------------------------------------------------------
    # Leaves
    # ------------------------------------------------------------------

    def _leaf_rule(self, node: TreeNode, path: tuple[Condition, ...]) -> DecisionRule:
        if node.prediction_value is not None:
            weight = node.weight
            error = node.error_sum / weight if weight > 0 else 0.0
            return DecisionRule(
                conditions=path,
                prediction=f"{node.prediction_value:.2f}",
                weight=weight,
                error=error,
                prediction_value=node.prediction_value,
            )

        if node.distribution is None:
            return DecisionRule(
                conditions=path,
                prediction=self.dataset.class_values[0],
                weight=0.0,
                error=0.0,
            )

        counts = np.asarray(node.distribution, dtype=float)
        if len(counts) != self.dataset.num_classes:
            raise ContractViolation(
                f"leaf distribution has {len(counts)} entries, expected "
                f"{self.dataset.num_classes}"
            )
        best = int(np.argmax(counts))
        weight = float(counts.sum())
        return DecisionRule(
            conditions=path,
            prediction=self.dataset.class_values[best],
            weight=weight,
            error=weight - float(counts[best]),
        )


def _add_nominal(
    path: tuple[Condition, ...],
    attribute: str,
    value: str,
) -> tuple[Condition, ...]:
    if any(cond.attribute == attribute for cond in path):
        return path
    return path + (NominalEquals(attribute, value),)
