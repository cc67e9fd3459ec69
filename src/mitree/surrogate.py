"""The final, pruned decision tree trained on the meta dataset."""

from __future__ import annotations

import warnings
from logging import getLogger
from typing import Mapping, Optional, Protocol

import numpy as np
import pandas as pd
from sklearn.model_selection import KFold, StratifiedKFold
from sklearn.tree import DecisionTreeClassifier

from .catalog import AttributeCatalog
from .config import PruneConfig
from .dataset import Dataset
from .exceptions import EmptyTrainingSetError
from .extraction import RuleExtractor
from .forest import tree_from_sklearn
from .preprocessing import FeatureEncoder
from .pruning import (
    PruningReport,
    majority_index,
    prune_pessimistic,
    prune_reduced_error,
)
from .ruleset import RuleSet
from .tree import TreeNode
from .visualization import branch_label, export_dot, leaf_label, plot_meta_tree

logger = getLogger(__name__)


class TreeLearner(Protocol):
    """Anything that trains a pruned classification tree on a dataset."""

    def build(self, dataset: Dataset, prune: PruneConfig):
        ...


class MetaTreeModel:
    """A trained tree together with the schema it was trained on.

    Attributes
    ----------
    root : TreeNode
        Root of the (pruned) tree.
    schema : Dataset
        Empty dataset carrying attribute kinds, nominal values and class values.
    catalog : AttributeCatalog
        Numeric bounds of the training data, used when reading rules.
    pruning : PruningReport or None
        What pruning removed (``None`` for an unpruned tree).
    estimator : DecisionTreeClassifier or None
        The scikit-learn tree the model was converted from.
    """

    def __init__(
        self,
        root: TreeNode,
        schema: Dataset,
        catalog: AttributeCatalog,
        *,
        pruning: Optional[PruningReport] = None,
        estimator: Optional[DecisionTreeClassifier] = None,
    ) -> None:
        self.root = root
        self.schema = schema
        self.catalog = catalog
        self.pruning = pruning
        self.estimator = estimator

    @property
    def class_values(self) -> tuple[str, ...]:
        return self.schema.class_values

    # ------------------------------------------------------------------
    # Prediction
    # ------------------------------------------------------------------

    def classify(self, row: Mapping[str, object]) -> str:
        """Predicted class of one ``{attribute: value}`` row.

        A leaf that received no training weight predicts its parent's
        majority class.
        """
        node = self.root
        fallback = majority_index(node)
        while not node.is_leaf:
            totals = node.class_totals()
            if totals is not None and np.any(totals):
                fallback = majority_index(node)
            node = node.children[node.branch_for(row)]
        totals = node.class_totals()
        if totals is None or not np.any(totals):
            return self.class_values[fallback]
        return self.class_values[majority_index(node)]

    def predict(self, frame: pd.DataFrame) -> np.ndarray:
        """Predicted class of every row of *frame* (attribute columns by name)."""
        if isinstance(frame, Dataset):
            rows = frame.rows()
        else:
            rows = (
                {k: (None if pd.isna(v) else v) for k, v in record.items()}
                for record in frame.to_dict(orient="records")
            )
        return np.array([self.classify(row) for row in rows], dtype=object)

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def leaf_count(self) -> int:
        return self.root.leaf_count

    @property
    def node_count(self) -> int:
        return self.root.node_count

    @property
    def depth(self) -> int:
        return self.root.depth

    def rules(self) -> RuleSet:
        """The model read back as IF-THEN rules."""
        return RuleExtractor(self.catalog, self.schema).extract_ruleset(self.root)

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def to_text(self, normalize_by: Optional[float] = None) -> str:
        """Indented C4.5-style listing of the tree.

        Parameters
        ----------
        normalize_by : float or None
            Divide leaf weights by this value; the pipeline passes the
            forest size so weights read as per-tree averages.
        """
        if self.root.is_leaf:
            return ": " + leaf_label(self.root, self.class_values, normalize_by)
        lines: list[str] = []
        self._render(self.root, 0, lines, normalize_by)
        return "\n".join(lines)

    def _render(self, node: TreeNode, level: int, lines: list, normalize_by) -> None:
        indent = "|   " * level
        for branch, child in enumerate(node.children):
            test = indent + branch_label(node, branch)
            if child.is_leaf:
                lines.append(f"{test}: {leaf_label(child, self.class_values, normalize_by)}")
            else:
                lines.append(test)
                self._render(child, level + 1, lines, normalize_by)

    def to_dot(self, normalize_by: Optional[float] = None) -> str:
        """Export the tree as a Graphviz DOT string."""
        return export_dot(self.root, self.class_values, normalize_by=normalize_by)

    def plot(self, *, save_path: Optional[str] = None, **kwargs) -> None:
        """Render the tree (delegates to :func:`plot_meta_tree`)."""
        plot_meta_tree(self.root, self.class_values, save_path=save_path, **kwargs)

    def __str__(self) -> str:
        return (
            f"{self.to_text()}\n\n"
            f"Number of Leaves  : \t{self.leaf_count}\n\n"
            f"Size of the tree : \t{self.node_count}"
        )


class PrunedTreeLearner:
    """Default tree learner: an entropy tree from scikit-learn, then post-pruned.

    Growth uses :class:`sklearn.tree.DecisionTreeClassifier` on the encoded
    dataset. Pruning follows :class:`PruneConfig`: C4.5 pessimistic subtree
    replacement by default, reduced-error pruning against one held-out fold
    when requested, nothing for an unpruned tree.

    Indicator encoding always yields binary nominal splits, and subtree
    raising is not performed; both :class:`PruneConfig` flags are accepted
    for option compatibility and draw a warning when changed.

    Parameters
    ----------
    max_depth : int or None
        Optional depth limit while growing.
    """

    def __init__(self, *, max_depth: Optional[int] = None) -> None:
        self.max_depth = max_depth

    def build(self, dataset: Dataset, prune: PruneConfig) -> MetaTreeModel:
        if len(dataset) == 0 or dataset.total_weight <= 0:
            raise EmptyTrainingSetError(
                "cannot train a tree on a dataset without weighted rows"
            )
        if prune.binary_splits:
            warnings.warn(
                "binary_splits has no effect: indicator encoding always yields binary "
                "nominal splits.",
                stacklevel=2,
            )
        if not prune.subtree_raising:
            warnings.warn(
                "subtree_raising=False has no effect: subtree raising is never "
                "performed.",
                stacklevel=2,
            )

        grow, held_out = self._split(dataset, prune)
        encoder = FeatureEncoder(dataset)
        estimator = self._grow(grow, encoder, prune)
        root = tree_from_sklearn(
            estimator,
            encoder,
            [str(c) for c in estimator.classes_],
            dataset.class_values,
        )

        report: Optional[PruningReport] = None
        if prune.unpruned:
            pass
        elif prune.reduced_error_pruning:
            if held_out is not None:
                position = {c: i for i, c in enumerate(dataset.class_values)}
                root, report = prune_reduced_error(
                    root,
                    list(held_out.rows()),
                    [position[str(c)] for c in held_out.target],
                    held_out.weights,
                )
        else:
            root, report = prune_pessimistic(root, prune.confidence_factor)

        if report is not None:
            logger.info("%s", report)
        logger.info(
            "Trained meta tree with %d leaves and %d nodes", root.leaf_count, root.node_count
        )
        return MetaTreeModel(
            root,
            dataset.subset([]),
            AttributeCatalog.build(dataset),
            pruning=report,
            estimator=estimator,
        )

    def _split(self, dataset: Dataset, prune: PruneConfig):
        if prune.unpruned or not prune.reduced_error_pruning:
            return dataset, None
        if len(dataset) < prune.num_folds:
            warnings.warn(
                f"Only {len(dataset)} rows for {prune.num_folds}-fold reduced-error "
                f"pruning; growing an unpruned tree instead.",
                stacklevel=3,
            )
            return dataset, None

        y = dataset.target.astype(str).to_numpy()
        _, counts = np.unique(y, return_counts=True)
        if counts.min() >= prune.num_folds:
            folds = StratifiedKFold(prune.num_folds, shuffle=True, random_state=prune.seed)
        else:
            folds = KFold(prune.num_folds, shuffle=True, random_state=prune.seed)
        grow_idx, prune_idx = next(folds.split(np.zeros(len(y)), y))
        return dataset.subset(grow_idx), dataset.subset(prune_idx)

    def _grow(
        self,
        dataset: Dataset,
        encoder: FeatureEncoder,
        prune: PruneConfig,
    ) -> DecisionTreeClassifier:
        X = encoder.transform(dataset.frame)
        y = dataset.target.astype(str).to_numpy()
        total = dataset.total_weight
        min_fraction = min(0.5, prune.min_leaf_instances / total) if total > 0 else 0.0
        estimator = DecisionTreeClassifier(
            criterion="entropy",
            min_weight_fraction_leaf=min_fraction,
            max_depth=self.max_depth,
            random_state=prune.seed,
        )
        estimator.fit(X, y, sample_weight=dataset.weights)
        return estimator
