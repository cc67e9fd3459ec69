"""Tests for surrogate.py - the final tree learner and model."""

import numpy as np
import pytest

from mitree.catalog import AttributeCatalog
from mitree.config import PruneConfig
from mitree.exceptions import ConfigurationError, EmptyTrainingSetError
from mitree.surrogate import MetaTreeModel, PrunedTreeLearner
from mitree.tree import TreeNode


@pytest.fixture()
def hand_model(weather):
    root = TreeNode.nominal(
        "outlook",
        {
            "overcast": TreeNode.leaf([0, 4]),
            "rainy": TreeNode.nominal(
                "windy",
                {"FALSE": TreeNode.leaf([0, 3]), "TRUE": TreeNode.leaf([2, 0])},
            ),
            "sunny": TreeNode.numeric(
                "humidity", 75.5, TreeNode.leaf([0, 2]), TreeNode.leaf([3, 0])
            ),
        },
    )
    return MetaTreeModel(root, weather.subset([]), AttributeCatalog.build(weather))


class TestMetaTreeModel:
    def test_classify(self, hand_model):
        assert hand_model.classify({"outlook": "overcast"}) == "yes"
        assert hand_model.classify({"outlook": "sunny", "humidity": 90.0}) == "no"
        assert hand_model.classify({"outlook": "rainy", "windy": "TRUE"}) == "no"

    def test_predict_frame(self, hand_model, weather):
        predictions = hand_model.predict(weather.frame)
        assert list(predictions) == list(weather.target)

    def test_sizes(self, hand_model):
        assert hand_model.leaf_count == 5
        assert hand_model.node_count == 8
        assert hand_model.depth == 2

    def test_empty_leaf_uses_parent_majority(self, weather):
        root = TreeNode.numeric(
            "humidity", 80.0, TreeNode.leaf([0, 0]), TreeNode.leaf([3, 1]),
            distribution=[3, 1],
        )
        model = MetaTreeModel(root, weather.subset([]), AttributeCatalog.build(weather))
        assert model.classify({"humidity": 70.0}) == "no"

    def test_to_text(self, hand_model):
        text = hand_model.to_text()
        lines = text.splitlines()
        assert lines[0] == "outlook = overcast: yes (4.00)"
        assert lines[1] == "outlook = rainy"
        assert lines[2] == "|   windy = FALSE: yes (3.00)"
        assert "|   humidity >= 75.5: no (3.00)" in lines

    def test_to_text_normalized(self, hand_model):
        assert "yes (2.00)" in hand_model.to_text(normalize_by=2)

    def test_rules(self, hand_model):
        rules = hand_model.rules()
        assert rules.num_rules == 5
        assert str(rules.rules[0]).startswith("IF outlook = overcast THEN class = yes")

    def test_dot(self, hand_model):
        dot = hand_model.to_dot()
        assert dot.startswith("digraph")
        assert '[label="outlook"]' in dot
        assert '[label="= overcast"]' in dot

    def test_str(self, hand_model):
        text = str(hand_model)
        assert "Number of Leaves  : \t5" in text
        assert "Size of the tree : \t8" in text


class TestPrunedTreeLearner:
    def test_unpruned_matches_sklearn(self, weather):
        model = PrunedTreeLearner().build(weather, PruneConfig(unpruned=True))
        assert model.leaf_count == model.estimator.get_n_leaves()
        assert model.pruning is None
        assert set(model.predict(weather.frame)) <= {"yes", "no"}

    def test_pessimistic_pruning_shrinks(self, weather):
        full = PrunedTreeLearner().build(weather, PruneConfig(unpruned=True))
        pruned = PrunedTreeLearner().build(weather, PruneConfig())
        assert pruned.leaf_count <= full.leaf_count
        assert pruned.pruning is not None
        assert pruned.pruning.method == "pessimistic"

    def test_reduced_error_pruning(self, weather):
        model = PrunedTreeLearner().build(
            weather, PruneConfig(reduced_error_pruning=True, num_folds=3, seed=1)
        )
        assert model.pruning is not None
        assert model.pruning.method == "reduced-error"

    def test_reduced_error_with_too_few_rows_warns(self, weather):
        with pytest.warns(UserWarning, match="reduced-error"):
            model = PrunedTreeLearner().build(
                weather.subset([0, 1, 2]),
                PruneConfig(reduced_error_pruning=True, num_folds=5),
            )
        assert model.pruning is None

    def test_weighted_meta_rows(self, weather):
        weighted = weather.with_rows(
            weather.frame, list(weather.target), np.linspace(0.1, 2.0, 14)
        )
        model = PrunedTreeLearner().build(weighted, PruneConfig())
        assert model.root.weight == pytest.approx(weighted.total_weight)

    def test_missing_values_in_training_data(self, weather):
        frame = weather.frame.copy()
        frame.loc[[0, 3, 5], "humidity"] = np.nan
        frame.loc[[2, 7], "outlook"] = None
        ds = weather.with_rows(frame, list(weather.target), weather.weights)
        model = PrunedTreeLearner().build(ds, PruneConfig())
        assert model.classify({"outlook": None, "humidity": None}) in ("yes", "no")

    def test_empty_dataset(self, weather):
        with pytest.raises(EmptyTrainingSetError):
            PrunedTreeLearner().build(weather.subset([]), PruneConfig())

    def test_zero_weight_dataset(self, weather):
        ds = weather.with_rows(weather.frame, list(weather.target), np.zeros(14))
        with pytest.raises(EmptyTrainingSetError):
            PrunedTreeLearner().build(ds, PruneConfig())

    def test_confidence_too_high_for_pessimistic(self):
        with pytest.raises(ConfigurationError):
            PruneConfig(confidence_factor=0.7)

    def test_binary_splits_flag_warns(self, weather):
        with pytest.warns(UserWarning, match="binary_splits"):
            PrunedTreeLearner().build(weather, PruneConfig(binary_splits=True))

    def test_subtree_raising_flag_warns(self, weather):
        with pytest.warns(UserWarning, match="subtree_raising"):
            PrunedTreeLearner().build(weather, PruneConfig(subtree_raising=False))
