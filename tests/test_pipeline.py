"""Tests for pipeline.py - the end-to-end meta induction run."""

import numpy as np
import pandas as pd
import pytest
from sklearn.datasets import load_iris

from mitree import MetaInductionPipeline, MITConfig, PruneConfig, run
from mitree.dataset import Dataset
from mitree.exceptions import ConfigurationError, EmptyTrainingSetError
from mitree.meta_dataset import SKIP_SATISFACTION
from mitree.tree import TreeNode


class FakeForest:
    """Returns the same hand-built trees every time."""

    def __init__(self, *trees):
        self.trees = trees
        self.calls = 0

    def build(self, dataset, tree_count):
        self.calls += 1
        return [self.trees[i % len(self.trees)] for i in range(tree_count)]


class RecordingTreeLearner:
    def __init__(self):
        self.datasets = []

    def build(self, dataset, prune):
        self.datasets.append(dataset)
        return _FakeModel()


class _FakeModel:
    leaf_count = 1
    node_count = 1

    def classify(self, row):
        return "c1"


@pytest.fixture()
def ab_dataset():
    frame = pd.DataFrame({
        "A": ["x", "y", "y", "y"],
        "B": ["p", "p", "p", "q"],
        "class": ["c1", "c1", "c2", "c2"],
    })
    return Dataset.from_frame(frame, "class", weights=[4, 1, 2, 1])


@pytest.fixture()
def ab_tree():
    return TreeNode.nominal(
        "A",
        {
            "x": TreeNode.leaf([4, 0]),
            "y": TreeNode.nominal(
                "B", {"p": TreeNode.leaf([1, 2]), "q": TreeNode.leaf([0, 1])}
            ),
        },
    )


class TestScenario:
    def test_three_rules_three_rows(self, ab_dataset, ab_tree):
        learner = RecordingTreeLearner()
        config = MITConfig(
            forest_size=1, numeric_strategy="A", weight_strategy="P", keep_meta_dataset=True
        )
        result = MetaInductionPipeline(config, FakeForest(ab_tree), learner).run(ab_dataset)

        meta = learner.datasets[0]
        assert len(meta) == 3
        assert list(meta.weights) == pytest.approx([4.0, 2.0, 1.0])
        assert list(meta.target) == ["c1", "c2", "c2"]
        assert meta.frame["B"].iloc[0] is None
        assert result.meta_dataset is meta
        assert result.report.num_rules == 3
        assert result.report.meta_rows == 3
        assert result.report.meta_weight == pytest.approx(7.0)
        assert result.report.trees[0].training_error == pytest.approx(1.0)
        assert result.leaf_count == 1

    def test_meta_dataset_dropped_by_default(self, ab_dataset, ab_tree):
        config = MITConfig(forest_size=1)
        result = MetaInductionPipeline(
            config, FakeForest(ab_tree), RecordingTreeLearner()
        ).run(ab_dataset)
        assert result.meta_dataset is None

    def test_rows_accumulate_in_tree_order(self, ab_dataset, ab_tree):
        stump = TreeNode.nominal(
            "B", {"p": TreeNode.leaf([5, 2]), "q": TreeNode.leaf([0, 1])}
        )
        learner = RecordingTreeLearner()
        config = MITConfig(forest_size=2, weight_strategy="L")
        MetaInductionPipeline(config, FakeForest(ab_tree, stump), learner).run(ab_dataset)
        meta = learner.datasets[0]
        assert len(meta) == 5
        assert list(meta.frame["B"]) == [None, "p", "q", "p", "q"]


class TestFailures:
    def test_zero_forest_size_fails_before_forest(self, ab_dataset, ab_tree):
        forest = FakeForest(ab_tree)
        with pytest.raises(ConfigurationError):
            run(ab_dataset, 0, "A", "P", PruneConfig(), forest_learner=forest)
        assert forest.calls == 0

    def test_high_confidence_fails_before_forest(self, ab_dataset, ab_tree):
        forest = FakeForest(ab_tree)
        with pytest.raises(ConfigurationError):
            pipeline = MetaInductionPipeline(
                MITConfig.from_options("-C 0.75 -I 2"), forest, RecordingTreeLearner()
            )
            pipeline.run(ab_dataset)
        assert forest.calls == 0

    def test_all_rules_filtered_by_satisfaction(self, ab_dataset):
        forest = FakeForest(TreeNode.leaf([5, 3]))
        learner = RecordingTreeLearner()
        pipeline = MetaInductionPipeline(
            MITConfig(forest_size=3, weight_strategy="S"), forest, learner
        )
        with pytest.raises(EmptyTrainingSetError):
            pipeline.run(ab_dataset)
        assert learner.datasets == []

    def test_skip_reasons_recorded(self, ab_dataset, ab_tree):
        stump = TreeNode.leaf([5, 3])
        result = MetaInductionPipeline(
            MITConfig(forest_size=2, weight_strategy="S"),
            FakeForest(ab_tree, stump),
            RecordingTreeLearner(),
        ).run(ab_dataset)
        assert result.report.skipped == {SKIP_SATISFACTION: 1}
        assert result.skipped[0][0] == 1


class TestRuleTable:
    def test_one_tree_as_table(self, ab_dataset, ab_tree):
        pipeline = MetaInductionPipeline(MITConfig(forest_size=1))
        table = pipeline.rule_table(ab_dataset, ab_tree)
        assert list(table["class"]) == ["c1", "c2", "c2"]
        assert list(table["A"]) == ["x", "y", "y"]
        assert list(table["B"]) == ["?", "p", "q"]
        assert list(table["weight"]) == [4.0, 3.0, 1.0]
        assert table.loc[1, "error"] == 1.0


class TestParallel:
    def test_threads_give_same_meta_dataset(self, ab_dataset, ab_tree):
        stump = TreeNode.nominal(
            "B", {"p": TreeNode.leaf([5, 2]), "q": TreeNode.leaf([0, 1])}
        )
        metas = []
        for n_jobs in (1, 2):
            learner = RecordingTreeLearner()
            config = MITConfig(forest_size=6, weight_strategy="N", n_jobs=n_jobs)
            MetaInductionPipeline(config, FakeForest(ab_tree, stump), learner).run(
                ab_dataset
            )
            metas.append(learner.datasets[0])
        assert list(metas[0].target) == list(metas[1].target)
        assert np.array_equal(metas[0].weights, metas[1].weights)


class TestEndToEnd:
    def test_weather(self, weather):
        config = MITConfig(forest_size=5, random_state=0)
        result = MetaInductionPipeline(config).run(weather)
        assert result.leaf_count >= 1
        assert result.node_count >= result.leaf_count
        assert set(result.predict(weather.frame)) <= {"yes", "no"}
        assert "Meta Induction Report" in str(result)
        assert result.to_text(normalize=True)
        assert 1 <= result.rules().num_rules <= result.leaf_count

    @pytest.mark.parametrize("weight", ["P", "L", "N", "S"])
    @pytest.mark.parametrize("numeric", ["I", "A"])
    def test_iris_strategies(self, numeric, weight):
        iris = load_iris(as_frame=True)
        frame = iris.frame.copy()
        frame["target"] = iris.target_names[iris.target]
        dataset = Dataset.from_frame(frame, "target", relation="iris")
        result = run(dataset, 10, numeric, weight, PruneConfig(), random_state=1)
        predictions = result.predict(dataset.frame)
        accuracy = np.mean(predictions == dataset.target.to_numpy())
        assert accuracy > 0.7

    def test_options_string(self, weather):
        config = MITConfig.from_options("-R -N 3 -M 1 -I 4 -STG A -W L")
        result = MetaInductionPipeline(config).run(weather)
        assert result.report.forest_size == 4
        assert result.report.numeric_strategy == "A"
