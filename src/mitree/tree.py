"""Abstract decision-tree nodes shared by the forest, the extractor and the final model."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, Mapping, Optional, Sequence

import numpy as np

from .dataset import is_missing
from .ruleset import NOMINAL, NUMERIC


@dataclass(frozen=True)
class TreeNode:
    """One node of a trained decision tree.

    Internal nodes carry a split; leaves carry a class distribution.

    Attributes
    ----------
    attribute : str or None
        Split attribute (``None`` for leaves).
    kind : str or None
        ``"nominal"`` or ``"numeric"`` split kind.
    threshold : float or None
        Numeric split point: child 0 is ``value < threshold``, child 1 is
        ``value >= threshold``.
    children : tuple of TreeNode
        Sub-trees in branch order.
    branch_values : tuple of (str or None)
        Nominal value tested by each branch. ``None`` marks the complement
        branch of a binary ``attribute = value`` split and adds no condition.
    distribution : tuple of float or None
        Class weights in the dataset's class-value order. Internal nodes may
        carry one too; it is used to route missing values.
    missing_branch : int or None
        Branch taken by a missing value. Defaults to the heaviest child.
    prediction_value : float or None
        Leaf mean for numeric-class trees.
    error_sum : float
        Summed error statistic of a numeric-class leaf.
    """

    attribute: Optional[str] = None
    kind: Optional[str] = None
    threshold: Optional[float] = None
    children: tuple[TreeNode, ...] = ()
    branch_values: tuple[Optional[str], ...] = ()
    distribution: Optional[tuple[float, ...]] = None
    missing_branch: Optional[int] = None
    prediction_value: Optional[float] = None
    error_sum: float = 0.0

    # ------------------------------------------------------------------
    # Construction helpers
    # ------------------------------------------------------------------

    @classmethod
    def leaf(cls, distribution: Optional[Sequence[float]]) -> TreeNode:
        if distribution is None:
            return cls()
        return cls(distribution=tuple(float(w) for w in distribution))

    @classmethod
    def regression_leaf(cls, mean: float, weight: float, error_sum: float = 0.0) -> TreeNode:
        return cls(
            distribution=(float(weight),),
            prediction_value=float(mean),
            error_sum=float(error_sum),
        )

    @classmethod
    def nominal(
        cls,
        attribute: str,
        branches: Mapping[Optional[str], TreeNode],
        *,
        distribution: Optional[Sequence[float]] = None,
        missing_branch: Optional[int] = None,
    ) -> TreeNode:
        """A multiway (or binary complement) split on a nominal attribute."""
        return cls(
            attribute=attribute,
            kind=NOMINAL,
            children=tuple(branches.values()),
            branch_values=tuple(branches.keys()),
            distribution=None if distribution is None else tuple(distribution),
            missing_branch=missing_branch,
        )

    @classmethod
    def numeric(
        cls,
        attribute: str,
        threshold: float,
        below: TreeNode,
        at_or_above: TreeNode,
        *,
        distribution: Optional[Sequence[float]] = None,
        missing_branch: Optional[int] = None,
    ) -> TreeNode:
        return cls(
            attribute=attribute,
            kind=NUMERIC,
            threshold=float(threshold),
            children=(below, at_or_above),
            distribution=None if distribution is None else tuple(distribution),
            missing_branch=missing_branch,
        )

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def is_leaf(self) -> bool:
        return not self.children

    @property
    def weight(self) -> float:
        """Training weight that reached this node."""
        if self.distribution is not None:
            if self.prediction_value is not None:
                return self.distribution[0]
            return float(sum(self.distribution))
        return float(sum(child.weight for child in self.children))

    def class_totals(self) -> Optional[np.ndarray]:
        """Class distribution of the node, summed from the leaves if needed."""
        if self.distribution is not None and self.prediction_value is None:
            return np.asarray(self.distribution, dtype=float)
        totals = [child.class_totals() for child in self.children]
        totals = [t for t in totals if t is not None]
        if not totals:
            return None
        return np.sum(totals, axis=0)

    def branch_for(self, row: Mapping[str, object]) -> int:
        """Index of the child *row* descends into."""
        value = row.get(self.attribute)
        if is_missing(value):
            return self._missing_branch()
        if self.kind == NUMERIC:
            return 0 if float(value) < self.threshold else 1
        value = str(value)
        if value in self.branch_values:
            return self.branch_values.index(value)
        if None in self.branch_values:
            return self.branch_values.index(None)
        return self._missing_branch()

    def _missing_branch(self) -> int:
        if self.missing_branch is not None:
            return self.missing_branch
        weights = [child.weight for child in self.children]
        return int(np.argmax(weights))

    def iter_nodes(self) -> Iterator[TreeNode]:
        yield self
        for child in self.children:
            yield from child.iter_nodes()

    @property
    def node_count(self) -> int:
        return sum(1 for _ in self.iter_nodes())

    @property
    def leaf_count(self) -> int:
        return sum(1 for node in self.iter_nodes() if node.is_leaf)

    @property
    def depth(self) -> int:
        if self.is_leaf:
            return 0
        return 1 + max(child.depth for child in self.children)
