"""Tests for report.py and visualization.py."""

import os

import pytest

from mitree.contingency import score_rules
from mitree.report import MetaInductionReport, TreeSummary, format_rule_table
from mitree.ruleset import DecisionRule, NominalEquals, NumericRange
from mitree.tree import TreeNode
from mitree.visualization import branch_label, export_dot, leaf_label, plot_meta_tree


@pytest.fixture()
def scored():
    rules = [
        DecisionRule(
            (NominalEquals("outlook", "sunny"), NumericRange("humidity", ">=", 75.5, 75.5, 96.0)),
            "no",
            3.0,
            0.0,
        ),
        DecisionRule((NominalEquals("outlook", "overcast"),), "yes", 4.0, 0.0),
    ]
    return score_rules(rules, {"no": 5.0, "yes": 9.0}, 14.0, 2)


class TestRuleTable:
    def test_layout(self, scored):
        table = format_rule_table(scored, ["outlook", "temperature", "humidity"])
        assert len(table) == 2
        assert list(table.columns[:5]) == ["outlook", "temperature", "humidity", "class", "weight"]
        assert table.loc[0, "humidity"] == "[75.50,96.00]"
        assert table.loc[0, "temperature"] == "?"
        assert table.loc[1, "outlook"] == "overcast"
        assert table.loc[1, "precision"] == 1.0
        assert table.loc[1, "weight_precision"] == 4.0

    def test_contingency_columns(self, scored):
        table = format_rule_table(scored, ["outlook"])
        row = table.iloc[1]
        assert (row["LR"], row["L_R"], row["_LR"], row["_L_R"]) == (4.0, 0.0, 5.0, 5.0)
        assert row["correct"] == 4.0


class TestReports:
    def test_tree_summary_str(self):
        summary = TreeSummary(0, 5, 1.5, 8, {"non_positive_weight": 1})
        text = str(summary)
        assert "Tree 0: 5 rules" in text
        assert "non_positive_weight=1" in text

    def test_run_report(self):
        report = MetaInductionReport(
            forest_size=2,
            numeric_strategy="I",
            weight_strategy="N",
            num_rules=9,
            skipped={"novelty_not_positive": 2},
            meta_rows=12,
            meta_weight=3.25,
            leaves=4,
            nodes=7,
            trees=(TreeSummary(0, 5, 1.0, 6), TreeSummary(1, 4, 2.0, 6)),
        )
        assert report.num_skipped == 2
        assert report.avg_forest_error == pytest.approx(1.5)
        text = str(report)
        assert text.startswith("=== Meta Induction Report ===")
        assert "Rules skipped: 2" in text
        assert "novelty_not_positive: 2" in text
        assert "Final tree leaves: 4" in text


class TestVisualization:
    @pytest.fixture()
    def tree(self):
        return TreeNode.nominal(
            "color",
            {
                None: TreeNode.leaf([3, 1]),
                "red": TreeNode.numeric(
                    "size", 2.5, TreeNode.leaf([0, 2]), TreeNode.leaf([1, 0])
                ),
            },
        )

    def test_labels(self, tree):
        assert branch_label(tree, 0) == "color != red"
        assert branch_label(tree, 1) == "color = red"
        assert branch_label(tree.children[1], 1) == "size >= 2.5"
        assert leaf_label(tree.children[0], ("a", "b")) == "a (4.00/1.00)"
        assert leaf_label(TreeNode.leaf([0, 0]), ("a", "b")) == "null (0.0)"

    def test_dot(self, tree):
        dot = export_dot(tree, ("a", "b"), normalize_by=2)
        assert dot.startswith("digraph MetaTree {")
        assert dot.rstrip().endswith("}")
        assert '[label="!= red"]' in dot
        assert "a (2.00/0.50)" in dot

    def test_plot_saves_file(self, tree, tmp_path):
        path = tmp_path / "tree.png"
        plot_meta_tree(tree, ("a", "b"), save_path=str(path), figsize=(6, 4))
        assert os.path.getsize(path) > 0
