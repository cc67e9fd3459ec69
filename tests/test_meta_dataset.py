"""Tests for meta_dataset.py - turning scored rules into synthetic rows."""

import pandas as pd
import pytest

from mitree.contingency import ScoredRule, compute_metrics
from mitree.dataset import Dataset
from mitree.exceptions import ConfigurationError
from mitree.meta_dataset import (
    SKIP_NOVELTY,
    SKIP_SATISFACTION,
    SKIP_UNDEFINED,
    SKIP_WEIGHT,
    MetaDatasetBuilder,
    NumericStrategy,
    WeightStrategy,
    meta_rows_to_dataset,
)
from mitree.ruleset import DecisionRule, NominalEquals, NumericRange

ATTRIBUTES = ("outlook", "temp", "humidity")
CLASS_WEIGHTS = {"no": 5.0, "yes": 9.0}
TOTAL = 14.0


def _score(rule, class_weights=CLASS_WEIGHTS, total=TOTAL):
    return ScoredRule(rule, compute_metrics(rule, class_weights, total, len(class_weights)))


@pytest.fixture()
def nominal_rule():
    return _score(DecisionRule((NominalEquals("outlook", "overcast"),), "yes", 4.0, 0.0))


@pytest.fixture()
def numeric_rule():
    return _score(DecisionRule(
        (
            NominalEquals("outlook", "sunny"),
            NumericRange("temp", "<", 75.0, 64.0, 75.0),
            NumericRange("humidity", ">=", 80.0, 80.0, 96.0),
        ),
        "no",
        3.0,
        0.0,
    ))


class TestStrategies:
    def test_parse_codes_and_names(self):
        assert NumericStrategy.parse("i") is NumericStrategy.INTERVAL
        assert NumericStrategy.parse("average") is NumericStrategy.AVERAGE
        assert WeightStrategy.parse("L") is WeightStrategy.LAPLACE
        assert WeightStrategy.parse(WeightStrategy.NOVELTY) is WeightStrategy.NOVELTY
        assert WeightStrategy.SATISFACTION.metric == "satisfaction"

    def test_unknown_code(self):
        with pytest.raises(ConfigurationError):
            WeightStrategy.parse("X")
        with pytest.raises(ConfigurationError):
            NumericStrategy.parse(None)


class TestRowsPerRule:
    @pytest.mark.parametrize("numeric", ["I", "A"])
    @pytest.mark.parametrize("weight", ["P", "L", "N", "S"])
    def test_nominal_rule_gives_one_row(self, nominal_rule, numeric, weight):
        rows = MetaDatasetBuilder(ATTRIBUTES, numeric, weight).build([nominal_rule])
        assert len(rows) == 1
        assert rows[0].as_dict() == {"outlook": "overcast", "temp": None, "humidity": None}
        assert rows[0].class_value == "yes"

    def test_nominal_row_weight_is_weighted_metric(self, nominal_rule):
        rows = MetaDatasetBuilder(ATTRIBUTES, "A", "L").build([nominal_rule])
        assert rows[0].weight == pytest.approx(4.0 * 5 / 6)

    def test_average_uses_midpoints(self, numeric_rule):
        rows = MetaDatasetBuilder(ATTRIBUTES, "A", "P").build([numeric_rule])
        assert len(rows) == 1
        assert rows[0]["temp"] == pytest.approx(69.5)
        assert rows[0]["humidity"] == pytest.approx(88.0)
        assert rows[0]["outlook"] == "sunny"
        assert rows[0].weight == pytest.approx(3.0)

    def test_interval_uses_endpoints(self, numeric_rule):
        low, high = MetaDatasetBuilder(ATTRIBUTES, "I", "P").build([numeric_rule])
        assert (low["temp"], low["humidity"]) == (64.0, 80.0)
        assert (high["temp"], high["humidity"]) == (75.0, 96.0)
        assert low["outlook"] == high["outlook"] == "sunny"

    @pytest.mark.parametrize("weight", ["P", "L", "N", "S"])
    def test_interval_pair_sums_to_average_weight(self, numeric_rule, weight):
        pair = MetaDatasetBuilder(ATTRIBUTES, "I", weight).build([numeric_rule])
        single = MetaDatasetBuilder(ATTRIBUTES, "A", weight).build([numeric_rule])
        assert len(pair) == 2
        assert pair[0].weight == pair[1].weight
        assert pair[0].weight + pair[1].weight == pytest.approx(single[0].weight)


class TestFilters:
    def test_zero_novelty_excluded(self):
        # a rule covering everything has novelty exactly 0
        rule = _score(DecisionRule((), "yes", 14.0, 5.0))
        assert rule.metrics.novelty == pytest.approx(0.0)
        result = MetaDatasetBuilder(ATTRIBUTES, "A", "N").build_report([rule])
        assert len(result) == 0
        assert result.skipped[0].reason == SKIP_NOVELTY

    def test_negative_novelty_excluded(self):
        rule = _score(DecisionRule((NominalEquals("outlook", "rainy"),), "no", 4.0, 3.0))
        assert rule.metrics.novelty < 0
        assert MetaDatasetBuilder(ATTRIBUTES, "A", "N").build([rule]) == ()

    def test_non_positive_satisfaction_excluded(self):
        rule = _score(DecisionRule((), "yes", 14.0, 5.0))
        result = MetaDatasetBuilder(ATTRIBUTES, "A", "S").build_report([rule])
        assert result.skipped[0].reason == SKIP_SATISFACTION

    def test_precision_has_no_prefilter(self):
        rule = _score(DecisionRule((), "yes", 14.0, 5.0))
        rows = MetaDatasetBuilder(ATTRIBUTES, "A", "P").build([rule])
        assert rows[0].weight == pytest.approx(9.0)

    def test_zero_weight_excluded(self):
        rule = _score(DecisionRule((NominalEquals("outlook", "sunny"),), "no", 0.0, 0.0))
        result = MetaDatasetBuilder(ATTRIBUTES, "A", "L").build_report([rule])
        assert result.skipped[0].reason == SKIP_WEIGHT

    def test_undefined_metric_excluded(self):
        rule = _score(DecisionRule((), "yes", 3.0, 0.0), {"yes": 3.0}, 3.0)
        assert rule.metrics.satisfaction is None
        result = MetaDatasetBuilder(ATTRIBUTES, "A", "S").build_report([rule])
        assert result.skipped[0].reason == SKIP_UNDEFINED
        assert len(MetaDatasetBuilder(ATTRIBUTES, "A", "P").build([rule])) == 1

    def test_skip_records_index(self, nominal_rule):
        rule = _score(DecisionRule((), "yes", 14.0, 5.0))
        result = MetaDatasetBuilder(ATTRIBUTES, "A", "N").build_report(
            [nominal_rule, rule]
        )
        assert len(result) == 1
        assert result.skipped[0].index == 1


class TestDeterminism:
    def test_repeated_builds_identical(self, nominal_rule, numeric_rule):
        builder = MetaDatasetBuilder(ATTRIBUTES, "I", "L")
        assert builder.build([nominal_rule, numeric_rule]) == builder.build(
            [nominal_rule, numeric_rule]
        )


class TestMetaRowsToDataset:
    def test_schema_and_weights(self, nominal_rule, numeric_rule):
        template = Dataset.from_frame(
            pd.DataFrame({
                "outlook": ["sunny", "overcast", "rainy"],
                "temp": [64.0, 75.0, 85.0],
                "humidity": [80.0, 65.0, 96.0],
                "play": ["no", "yes", "yes"],
            }),
            "play",
        )
        rows = MetaDatasetBuilder(ATTRIBUTES, "I", "P").build([nominal_rule, numeric_rule])
        meta = meta_rows_to_dataset(rows, template)
        assert len(meta) == 3
        assert meta.attributes == template.attributes
        assert meta.nominal_values("outlook") == template.nominal_values("outlook")
        assert list(meta.target) == ["yes", "no", "no"]
        assert meta.total_weight == pytest.approx(4.0 + 3.0)
        assert meta.frame["temp"].isna().iloc[0]
