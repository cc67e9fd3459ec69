"""Main entry point: forest, rules, meta dataset, final tree."""

from __future__ import annotations

from dataclasses import dataclass, replace
from logging import getLogger
from typing import Mapping, Optional, Sequence

import numpy as np
import pandas as pd
from joblib import Parallel, delayed

from .catalog import AttributeCatalog
from .config import MITConfig, PruneConfig, validate_forest_size
from .contingency import ScoredRule, score_rules
from .dataset import Dataset
from .exceptions import EmptyTrainingSetError
from .extraction import RuleExtractor
from .forest import ForestLearner, RandomForestLearner
from .meta_dataset import (
    MetaDatasetBuilder,
    MetaRow,
    NumericStrategy,
    SkippedRule,
    WeightStrategy,
    meta_rows_to_dataset,
)
from .report import MetaInductionReport, TreeSummary, count_reasons, format_rule_table
from .ruleset import RuleSet
from .surrogate import PrunedTreeLearner, TreeLearner
from .tree import TreeNode

logger = getLogger(__name__)


@dataclass(frozen=True)
class TreeContribution:
    """Everything one forest tree added to the meta dataset."""

    rows: tuple[MetaRow, ...]
    skipped: tuple[SkippedRule, ...]
    summary: TreeSummary


class MetaInductionResult:
    """Container returned by :meth:`MetaInductionPipeline.run`.

    Attributes
    ----------
    model : MetaTreeModel
        The final tree trained on the meta dataset.
    report : MetaInductionReport
        Run statistics.
    config : MITConfig
        The configuration of the run.
    skipped : tuple of (int, SkippedRule)
        Every rule left out of the meta dataset, with its tree index.
    meta_dataset : Dataset or None
        The meta dataset (only with ``keep_meta_dataset=True``).
    """

    def __init__(
        self,
        model,
        report: MetaInductionReport,
        config: MITConfig,
        *,
        skipped: Sequence[tuple[int, SkippedRule]] = (),
        meta_dataset: Optional[Dataset] = None,
    ) -> None:
        self.model = model
        self.report = report
        self.config = config
        self.skipped = tuple(skipped)
        self.meta_dataset = meta_dataset

    # ------------------------------------------------------------------
    # Convenience methods
    # ------------------------------------------------------------------

    def classify(self, row: Mapping[str, object]) -> str:
        return self.model.classify(row)

    def predict(self, frame: pd.DataFrame) -> np.ndarray:
        return self.model.predict(frame)

    @property
    def leaf_count(self) -> int:
        return self.model.leaf_count

    @property
    def node_count(self) -> int:
        return self.model.node_count

    def rules(self) -> RuleSet:
        """Rules of the final tree."""
        return self.model.rules()

    def to_text(self, normalize: bool = False) -> str:
        """The final tree as text; *normalize* divides leaf weights by the forest size."""
        return self.model.to_text(self.config.forest_size if normalize else None)

    def to_dot(self) -> str:
        return self.model.to_dot()

    def plot(self, *, save_path: Optional[str] = None, **kwargs) -> None:
        self.model.plot(save_path=save_path, **kwargs)

    def __str__(self) -> str:
        return "\n".join([
            "Meta Induction Tree",
            "-------------------",
            "",
            str(self.model),
            "",
            str(self.report),
        ])


class MetaInductionPipeline:
    """Condense a random forest into one explainable decision tree.

    Parameters
    ----------
    config : MITConfig or None
        Run configuration (defaults to ``MITConfig()``).
    forest_learner : ForestLearner or None
        Grows the forest; defaults to :class:`RandomForestLearner` seeded
        with ``config.random_state``.
    tree_learner : TreeLearner or None
        Trains the final tree; defaults to :class:`PrunedTreeLearner`.

    Examples
    --------
    >>> pipeline = MetaInductionPipeline(MITConfig(forest_size=15, weight_strategy="L"))
    >>> result = pipeline.run(dataset)
    >>> print(result.to_text())
    """

    def __init__(
        self,
        config: Optional[MITConfig] = None,
        forest_learner: Optional[ForestLearner] = None,
        tree_learner: Optional[TreeLearner] = None,
    ) -> None:
        self.config = config if config is not None else MITConfig()
        if forest_learner is None:
            forest_learner = RandomForestLearner(random_state=self.config.random_state)
        self.forest_learner = forest_learner
        self.tree_learner = tree_learner if tree_learner is not None else PrunedTreeLearner()

    def run(self, dataset: Dataset) -> MetaInductionResult:
        """Run every stage on *dataset* and return the final model with its report."""
        config = self.config
        validate_forest_size(config.forest_size)

        catalog = AttributeCatalog.build(dataset)
        trees = list(self.forest_learner.build(dataset, config.forest_size))
        logger.info("Forest learner returned %d trees", len(trees))

        contributions = self._contributions(dataset, catalog, trees)

        rows: list[MetaRow] = []
        skipped: list[tuple[int, SkippedRule]] = []
        for index, contribution in enumerate(contributions):
            rows.extend(contribution.rows)
            skipped.extend((index, s) for s in contribution.skipped)

        summaries = tuple(c.summary for c in contributions)
        report = MetaInductionReport(
            forest_size=config.forest_size,
            numeric_strategy=config.numeric_strategy.value,
            weight_strategy=config.weight_strategy.value,
            num_rules=sum(s.num_rules for s in summaries),
            skipped=count_reasons(s for _, s in skipped),
            meta_rows=len(rows),
            meta_weight=float(sum(r.weight for r in rows)),
            trees=summaries,
        )

        if not rows:
            raise EmptyTrainingSetError(
                f"every one of the {report.num_rules} extracted rules was filtered out "
                f"(weight strategy {config.weight_strategy.name.lower()}); "
                f"no meta dataset to train on"
            )

        meta = meta_rows_to_dataset(rows, dataset)
        logger.info(
            "Meta dataset: %d rows, total weight %.4f", len(meta), meta.total_weight
        )
        model = self.tree_learner.build(meta, config.prune)

        report = replace(report, leaves=model.leaf_count, nodes=model.node_count)
        return MetaInductionResult(
            model,
            report,
            config,
            skipped=skipped,
            meta_dataset=meta if config.keep_meta_dataset else None,
        )

    # ------------------------------------------------------------------
    # Per-tree work
    # ------------------------------------------------------------------

    def score_tree(
        self,
        dataset: Dataset,
        tree: TreeNode,
        catalog: Optional[AttributeCatalog] = None,
    ) -> list[ScoredRule]:
        """Extract and score the rules of one tree against *dataset*."""
        if catalog is None:
            catalog = AttributeCatalog.build(dataset)
        rules = RuleExtractor(catalog, dataset).extract(tree)
        return score_rules(
            rules,
            dataset.class_weights(),
            dataset.total_weight,
            dataset.num_classes,
            novelty_scale=self.config.novelty_scale,
        )

    def rule_table(self, dataset: Dataset, tree: TreeNode) -> pd.DataFrame:
        """One tree's scored rules as a decision table."""
        return format_rule_table(self.score_tree(dataset, tree), dataset.attributes)

    def _contributions(
        self,
        dataset: Dataset,
        catalog: AttributeCatalog,
        trees: Sequence[TreeNode],
    ) -> list[TreeContribution]:
        extractor = RuleExtractor(catalog, dataset)
        builder = MetaDatasetBuilder(
            dataset.attributes,
            self.config.numeric_strategy,
            self.config.weight_strategy,
        )
        class_weights = dataset.class_weights()
        total_weight = dataset.total_weight

        def contribute(index: int, tree: TreeNode) -> TreeContribution:
            rules = extractor.extract(tree)
            scored = score_rules(
                rules,
                class_weights,
                total_weight,
                dataset.num_classes,
                novelty_scale=self.config.novelty_scale,
            )
            built = builder.build_report(scored)
            summary = TreeSummary(
                index=index,
                num_rules=len(rules),
                training_error=float(sum(r.error for r in rules)),
                meta_rows=len(built.rows),
                skipped=count_reasons(built.skipped),
            )
            logger.debug("%s", summary)
            return TreeContribution(built.rows, built.skipped, summary)

        if self.config.n_jobs == 1:
            return [contribute(i, tree) for i, tree in enumerate(trees)]
        # joblib returns results in submission order
        return Parallel(n_jobs=self.config.n_jobs, prefer="threads")(
            delayed(contribute)(i, tree) for i, tree in enumerate(trees)
        )


def run(
    dataset: Dataset,
    forest_size: int,
    numeric_strategy=NumericStrategy.INTERVAL,
    weight_strategy=WeightStrategy.PRECISION,
    prune: Optional[PruneConfig] = None,
    *,
    forest_learner: Optional[ForestLearner] = None,
    tree_learner: Optional[TreeLearner] = None,
    **config_kwargs,
) -> MetaInductionResult:
    """Functional form of :meth:`MetaInductionPipeline.run`.

    ``forest_size`` is validated before anything else happens.
    """
    validate_forest_size(forest_size)
    config = MITConfig(
        forest_size=forest_size,
        numeric_strategy=numeric_strategy,
        weight_strategy=weight_strategy,
        prune=prune if prune is not None else PruneConfig(),
        **config_kwargs,
    )
    pipeline = MetaInductionPipeline(config, forest_learner, tree_learner)
    return pipeline.run(dataset)
