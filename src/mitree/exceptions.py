"""Error taxonomy for the meta induction pipeline."""

from __future__ import annotations


class MITError(Exception):
    """Base class for every error raised by mitree."""


class ConfigurationError(MITError, ValueError):
    """Invalid forest size, pruning parameters, strategy code or dataset."""


class DegenerateRuleError(MITError, ArithmeticError):
    """A rule metric is undefined because its denominator is zero.

    Raised by :class:`~mitree.contingency.ContingencyMatrix` and absorbed by
    :func:`~mitree.contingency.compute_metrics`; it never reaches the
    pipeline caller.
    """

    def __init__(self, metric: str, reason: str) -> None:
        super().__init__(f"{metric} is undefined: {reason}")
        self.metric = metric
        self.reason = reason


class EmptyTrainingSetError(MITError, RuntimeError):
    """The meta dataset has no rows left after filtering."""


class ContractViolation(MITError, AssertionError):
    """A collaborator broke the tree or attribute contract (programmer error)."""
