"""Random forests as the source of the trees to decompose."""

from __future__ import annotations

from logging import getLogger
from typing import Optional, Protocol, Sequence, Union

import numpy as np
from sklearn.ensemble import RandomForestClassifier

from .dataset import Dataset
from .preprocessing import FeatureEncoder
from .ruleset import NOMINAL, NUMERIC
from .tree import TreeNode

logger = getLogger(__name__)


class ForestLearner(Protocol):
    """Anything that grows ``tree_count`` independent randomized trees."""

    def build(self, dataset: Dataset, tree_count: int) -> Sequence[TreeNode]:
        ...


class RandomForestLearner:
    """Default forest learner backed by :class:`sklearn.ensemble.RandomForestClassifier`.

    Parameters
    ----------
    max_features : int, float, str or None, default "sqrt"
        Features considered at each split of the encoded matrix.
    min_samples_leaf : int, default 1
        Minimum samples per leaf of each random tree.
    max_depth : int or None
        Depth limit of each random tree (unlimited by default).
    bootstrap : bool, default True
        Grow each tree on a bootstrap sample.
    random_state : int, default 1
        Seed of the forest.
    n_jobs : int or None
        Parallel jobs for scikit-learn while fitting.
    """

    def __init__(
        self,
        *,
        max_features: Union[int, float, str, None] = "sqrt",
        min_samples_leaf: int = 1,
        max_depth: Optional[int] = None,
        bootstrap: bool = True,
        random_state: int = 1,
        n_jobs: Optional[int] = None,
    ) -> None:
        self.max_features = max_features
        self.min_samples_leaf = min_samples_leaf
        self.max_depth = max_depth
        self.bootstrap = bootstrap
        self.random_state = random_state
        self.n_jobs = n_jobs
        self.forest_: Optional[RandomForestClassifier] = None
        self.encoder_: Optional[FeatureEncoder] = None

    def build(self, dataset: Dataset, tree_count: int) -> list[TreeNode]:
        encoder = FeatureEncoder(dataset)
        X = encoder.transform(dataset.frame)
        y = dataset.target.astype(str).to_numpy()

        forest = RandomForestClassifier(
            n_estimators=tree_count,
            criterion="entropy",
            max_features=self.max_features,
            min_samples_leaf=self.min_samples_leaf,
            max_depth=self.max_depth,
            bootstrap=self.bootstrap,
            random_state=self.random_state,
            n_jobs=self.n_jobs,
        )
        forest.fit(X, y, sample_weight=dataset.weights)
        logger.info(
            "Grew %d random trees on %d rows x %d encoded features",
            tree_count, X.shape[0], X.shape[1],
        )

        self.forest_ = forest
        self.encoder_ = encoder
        class_order = [str(c) for c in forest.classes_]
        return [
            tree_from_sklearn(estimator, encoder, class_order, dataset.class_values)
            for estimator in forest.estimators_
        ]


def tree_from_sklearn(
    estimator,
    encoder: FeatureEncoder,
    fitted_classes: Sequence[str],
    class_values: Sequence[str],
) -> TreeNode:
    """Convert a fitted scikit-learn classification tree into :class:`TreeNode`s.

    Parameters
    ----------
    estimator : DecisionTreeClassifier
        Fitted on ``encoder``'s matrix.
    encoder : FeatureEncoder
        Maps encoded columns back to attributes and nominal values.
    fitted_classes : sequence of str
        Class labels in the column order of ``tree_.value``.
    class_values : sequence of str
        Class-value order of the resulting distributions.

    Returns
    -------
    TreeNode
        Root of the converted tree. Indicator splits become binary nominal
        splits with branch values ``(None, value)``; a numeric ``x <= t``
        split becomes ``x < nextafter(t, +inf)``.
    """
    tree_ = estimator.tree_
    feature = tree_.feature
    threshold = tree_.threshold
    children_left = tree_.children_left
    children_right = tree_.children_right
    value = tree_.value
    weighted = tree_.weighted_n_node_samples
    missing_left = getattr(tree_, "missing_go_to_left", None)

    position = {label: i for i, label in enumerate(class_values)}
    columns = np.array([position[str(label)] for label in fitted_classes])

    def _distribution(node_id: int) -> tuple[float, ...]:
        counts = np.asarray(value[node_id, 0], dtype=float)
        total = counts.sum()
        if total > 0:
            counts = counts / total * weighted[node_id]
        out = np.zeros(len(class_values))
        out[columns] = counts
        return tuple(float(c) for c in out)

    def _build(node_id: int) -> TreeNode:
        dist = _distribution(node_id)
        if children_left[node_id] == children_right[node_id]:
            return TreeNode(distribution=dist)

        left = _build(children_left[node_id])
        right = _build(children_right[node_id])
        missing_branch = None
        if missing_left is not None:
            missing_branch = 0 if missing_left[node_id] else 1

        column = encoder.columns[feature[node_id]]
        if column.is_indicator:
            return TreeNode(
                attribute=column.attribute,
                kind=NOMINAL,
                children=(left, right),
                branch_values=(None, column.value),
                distribution=dist,
                missing_branch=missing_branch,
            )
        return TreeNode(
            attribute=column.attribute,
            kind=NUMERIC,
            threshold=float(np.nextafter(threshold[node_id], np.inf)),
            children=(left, right),
            distribution=dist,
            missing_branch=missing_branch,
        )

    return _build(0)
