"""MIT (mitree) - Meta Induction Tree: condense a random forest into one explainable tree."""

from logging import NullHandler, getLogger

from .pipeline import MetaInductionPipeline, MetaInductionResult, run
from .config import MITConfig, PruneConfig
from .dataset import AttributeKind, Dataset
from .catalog import AttributeCatalog, AttributeSummary
from .ruleset import DecisionRule, NominalEquals, NumericRange, RuleSet
from .tree import TreeNode
from .extraction import RuleExtractor
from .contingency import ContingencyMatrix, RuleMetrics, ScoredRule, compute_metrics
from .meta_dataset import MetaDatasetBuilder, MetaRow, NumericStrategy, WeightStrategy
from .forest import RandomForestLearner, tree_from_sklearn
from .surrogate import MetaTreeModel, PrunedTreeLearner
from .report import MetaInductionReport, TreeSummary, format_rule_table
from .visualization import export_dot, plot_meta_tree
from .io import load_arff, load_csv
from .exceptions import (
    ConfigurationError,
    ContractViolation,
    DegenerateRuleError,
    EmptyTrainingSetError,
    MITError,
)

getLogger(__name__).addHandler(NullHandler())

__all__ = [
    "MetaInductionPipeline",
    "MetaInductionResult",
    "run",
    "MITConfig",
    "PruneConfig",
    "Dataset",
    "AttributeKind",
    "AttributeCatalog",
    "AttributeSummary",
    # Rules
    "DecisionRule",
    "NominalEquals",
    "NumericRange",
    "RuleSet",
    "TreeNode",
    "RuleExtractor",
    # Scoring
    "ContingencyMatrix",
    "RuleMetrics",
    "ScoredRule",
    "compute_metrics",
    # Meta dataset
    "MetaDatasetBuilder",
    "MetaRow",
    "NumericStrategy",
    "WeightStrategy",
    # Learners
    "RandomForestLearner",
    "tree_from_sklearn",
    "PrunedTreeLearner",
    "MetaTreeModel",
    # Reports
    "MetaInductionReport",
    "TreeSummary",
    "format_rule_table",
    "export_dot",
    "plot_meta_tree",
    "load_arff",
    "load_csv",
    # Errors
    "MITError",
    "ConfigurationError",
    "ContractViolation",
    "DegenerateRuleError",
    "EmptyTrainingSetError",
]
