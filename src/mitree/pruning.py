"""Post-pruning of grown trees: C4.5 pessimistic pruning and reduced-error pruning."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Mapping, Sequence

import numpy as np
from scipy.stats import norm

from .exceptions import ConfigurationError
from .tree import TreeNode

# Slack C4.5 allows before preferring the subtree over a leaf.
_PESSIMISTIC_SLACK = 0.1


@dataclass(frozen=True)
class PruningReport:
    """Summary of what pruning removed."""

    method: str
    original_nodes: int
    pruned_nodes: int
    original_leaves: int
    pruned_leaves: int
    collapsed: int

    def __str__(self) -> str:
        return (
            f"{self.method} pruning: {self.original_nodes} -> {self.pruned_nodes} nodes, "
            f"{self.original_leaves} -> {self.pruned_leaves} leaves "
            f"({self.collapsed} subtrees collapsed)"
        )


def add_errors(n: float, e: float, confidence_factor: float) -> float:
    """Extra errors on top of *e* at the upper confidence limit (C4.5's estimate).

    Parameters
    ----------
    n : float
        Weight of the instances at the node.
    e : float
        Observed misclassified weight.
    confidence_factor : float
        Confidence level, at most 0.5.
    """
    if confidence_factor > 0.5:
        raise ConfigurationError(
            f"confidence_factor above 0.5 is too high for pessimistic pruning, "
            f"got {confidence_factor!r}"
        )
    if n <= 0:
        return 0.0

    if e < 1:
        base = n * (1 - math.pow(confidence_factor, 1 / n))
        if e == 0:
            return base
        return base + e * (add_errors(n, 1, confidence_factor) - base)

    if e + 0.5 >= n:
        return max(n - e, 0.0)

    z = norm.ppf(1 - confidence_factor)
    f = (e + 0.5) / n
    r = (
        f
        + (z * z) / (2 * n)
        + z * math.sqrt(f / n - f * f / n + (z * z) / (4 * n * n))
    ) / (1 + (z * z) / n)
    return r * n - e


def majority_index(node: TreeNode) -> int:
    totals = node.class_totals()
    if totals is None or not np.any(totals):
        return 0
    return int(np.argmax(totals))


def _collapse(node: TreeNode) -> TreeNode:
    totals = node.class_totals()
    return TreeNode.leaf(None if totals is None else totals)


def _leaf_errors(node: TreeNode) -> tuple[float, float]:
    totals = node.class_totals()
    if totals is None:
        return 0.0, 0.0
    n = float(totals.sum())
    return n, n - float(totals.max())


def prune_pessimistic(
    root: TreeNode,
    confidence_factor: float,
) -> tuple[TreeNode, PruningReport]:
    """Replace subtrees whose estimated error is no better than a leaf's.

    The tree is never mutated; a pruned copy is returned.
    """
    collapsed = 0

    def estimate(node: TreeNode) -> float:
        n, e = _leaf_errors(node)
        return e + add_errors(n, e, confidence_factor)

    def prune(node: TreeNode) -> tuple[TreeNode, float]:
        nonlocal collapsed
        if node.is_leaf:
            return node, estimate(node)

        pruned = [prune(child) for child in node.children]
        subtree_errors = sum(err for _, err in pruned)
        leaf_errors = estimate(node)
        if leaf_errors <= subtree_errors + _PESSIMISTIC_SLACK:
            collapsed += 1
            return _collapse(node), leaf_errors
        return _with_children(node, [child for child, _ in pruned]), subtree_errors

    new_root, _ = prune(root)
    return new_root, _report("pessimistic", root, new_root, collapsed)


def prune_reduced_error(
    root: TreeNode,
    rows: Sequence[Mapping[str, object]],
    class_indices: Sequence[int],
    weights: Sequence[float],
) -> tuple[TreeNode, PruningReport]:
    """Collapse subtrees that do not beat a leaf on a held-out pruning set.

    Parameters
    ----------
    root : TreeNode
        Tree grown on the remaining folds.
    rows : sequence of mapping
        Pruning-set rows (``{attribute: value}``).
    class_indices : sequence of int
        Class index of every pruning row.
    weights : sequence of float
        Weight of every pruning row.
    """
    class_indices = np.asarray(class_indices, dtype=int)
    weights = np.asarray(weights, dtype=float)
    collapsed = 0

    def leaf_errors(node: TreeNode, idx: np.ndarray) -> float:
        if len(idx) == 0:
            return 0.0
        wrong = class_indices[idx] != majority_index(node)
        return float(weights[idx][wrong].sum())

    def prune(node: TreeNode, idx: np.ndarray) -> tuple[TreeNode, float]:
        nonlocal collapsed
        if node.is_leaf:
            return node, leaf_errors(node, idx)

        branches = np.array([node.branch_for(rows[i]) for i in idx], dtype=int)
        pruned = [
            prune(child, idx[branches == b]) for b, child in enumerate(node.children)
        ]
        subtree_errors = sum(err for _, err in pruned)
        as_leaf = leaf_errors(node, idx)
        if as_leaf <= subtree_errors:
            collapsed += 1
            return _collapse(node), as_leaf
        return _with_children(node, [child for child, _ in pruned]), subtree_errors

    new_root, _ = prune(root, np.arange(len(rows)))
    return new_root, _report("reduced-error", root, new_root, collapsed)


def _with_children(node: TreeNode, children) -> TreeNode:
    return TreeNode(
        attribute=node.attribute,
        kind=node.kind,
        threshold=node.threshold,
        children=tuple(children),
        branch_values=node.branch_values,
        distribution=node.distribution,
        missing_branch=node.missing_branch,
    )


def _report(method: str, before: TreeNode, after: TreeNode, collapsed: int) -> PruningReport:
    return PruningReport(
        method=method,
        original_nodes=before.node_count,
        pruned_nodes=after.node_count,
        original_leaves=before.leaf_count,
        pruned_leaves=after.leaf_count,
        collapsed=collapsed,
    )
