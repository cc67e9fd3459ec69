"""Pipeline and pruning configuration."""

from __future__ import annotations

import shlex
from dataclasses import dataclass, field, replace
from typing import Optional, Sequence

from .exceptions import ConfigurationError
from .meta_dataset import NumericStrategy, WeightStrategy

DEFAULT_FOREST_SIZE = 100
OPTIONS_FOREST_SIZE = 15


@dataclass(frozen=True)
class PruneConfig:
    """Settings passed straight through to the final tree learner.

    Parameters
    ----------
    unpruned : bool
        Grow the tree without any pruning.
    confidence_factor : float
        Confidence used by pessimistic (C4.5) pruning, ``0 < cf < 1`` and at
        most 0.5 unless the tree is unpruned or reduced-error pruned.
    min_leaf_instances : int
        Minimum training weight per leaf.
    reduced_error_pruning : bool
        Prune against a held-out fold instead of the pessimistic estimate.
    num_folds : int
        Folds for reduced-error pruning; one fold is the pruning set.
    seed : int
        Seed for shuffling the data before reduced-error pruning.
    binary_splits : bool
        Use binary splits on nominal attributes.
    subtree_raising : bool
        Consider subtree raising while pruning.
    """

    unpruned: bool = False
    confidence_factor: float = 0.25
    min_leaf_instances: int = 2
    reduced_error_pruning: bool = False
    num_folds: int = 3
    seed: int = 1
    binary_splits: bool = False
    subtree_raising: bool = True

    def __post_init__(self) -> None:
        if self.unpruned and not self.subtree_raising:
            raise ConfigurationError(
                "Subtree raising doesn't need to be unset for an unpruned tree."
            )
        if self.unpruned and self.reduced_error_pruning:
            raise ConfigurationError(
                "Unpruned tree and reduced error pruning can't be selected "
                "simultaneously."
            )
        if not 0 < self.confidence_factor < 1:
            raise ConfigurationError(
                f"confidence_factor must be greater than zero and smaller than one, "
                f"got {self.confidence_factor!r}"
            )
        if (
            not self.unpruned
            and not self.reduced_error_pruning
            and self.confidence_factor > 0.5
        ):
            raise ConfigurationError(
                f"confidence_factor above 0.5 is too high for pessimistic "
                f"pruning, got {self.confidence_factor!r}"
            )
        if self.min_leaf_instances < 1:
            raise ConfigurationError(
                f"min_leaf_instances must be at least 1, got {self.min_leaf_instances!r}"
            )
        if self.num_folds < 2:
            raise ConfigurationError(
                f"num_folds must be at least 2, got {self.num_folds!r}"
            )


@dataclass(frozen=True)
class MITConfig:
    """Explicit configuration of one meta induction run.

    Parameters
    ----------
    forest_size : int
        Number of random trees to grow.
    numeric_strategy : NumericStrategy or str
        ``"I"`` (interval endpoints) or ``"A"`` (interval midpoint).
    weight_strategy : WeightStrategy or str
        ``"P"`` precision, ``"L"`` Laplace, ``"N"`` novelty, ``"S"`` satisfaction.
    prune : PruneConfig
        Settings for the final tree.
    novelty_scale : float
        Extra factor on the weighted novelty; 100 puts novelty weights on
        the scale of the other metrics.
    keep_meta_dataset : bool
        Keep the meta dataset on the result after training.
    n_jobs : int
        Workers for per-tree rule extraction (joblib semantics).
    random_state : int
        Seed of the default forest learner.
    """

    forest_size: int = DEFAULT_FOREST_SIZE
    numeric_strategy: NumericStrategy = NumericStrategy.INTERVAL
    weight_strategy: WeightStrategy = WeightStrategy.PRECISION
    prune: PruneConfig = field(default_factory=PruneConfig)
    novelty_scale: float = 1.0
    keep_meta_dataset: bool = False
    n_jobs: int = 1
    random_state: int = 1

    def __post_init__(self) -> None:
        validate_forest_size(self.forest_size)
        object.__setattr__(self, "numeric_strategy", NumericStrategy.parse(self.numeric_strategy))
        object.__setattr__(self, "weight_strategy", WeightStrategy.parse(self.weight_strategy))
        if not isinstance(self.prune, PruneConfig):
            raise ConfigurationError(
                f"prune must be a PruneConfig, got {type(self.prune).__name__}"
            )
        if self.novelty_scale <= 0:
            raise ConfigurationError(
                f"novelty_scale must be positive, got {self.novelty_scale!r}"
            )
        if self.n_jobs == 0:
            raise ConfigurationError("n_jobs must not be 0")

    # ------------------------------------------------------------------
    # Option strings
    # ------------------------------------------------------------------

    @classmethod
    def from_options(cls, options, **overrides) -> MITConfig:
        """Parse an option string such as ``"-C 0.25 -M 2 -I 5 -STG A -W N"``.

        Recognised options: ``-U``, ``-C <cf>``, ``-M <n>``, ``-R``,
        ``-N <folds>``, ``-B``, ``-S``, ``-Q <seed>``, ``-I <forest size>``,
        ``-STG I|A`` and ``-W P|L|N|S``. Anything else is rejected.
        """
        tokens = shlex.split(options) if isinstance(options, str) else list(options)
        parser = _OptionReader(tokens)

        min_leaf = parser.value("M")
        forest = parser.value("I")
        strategy = parser.value("STG")
        weight = parser.value("W")
        binary = parser.flag("B")
        unpruned = parser.flag("U")
        no_raising = parser.flag("S")
        reduced = parser.flag("R")
        confidence = parser.value("C")
        folds = parser.value("N")
        seed = parser.value("Q")
        parser.check_empty()

        if confidence is not None:
            if reduced:
                raise ConfigurationError(
                    "Setting the confidence doesn't make sense for reduced error pruning."
                )
            if unpruned:
                raise ConfigurationError(
                    "Doesn't make sense to change confidence for an unpruned tree."
                )
        if folds is not None and not reduced:
            raise ConfigurationError(
                "Setting the number of folds doesn't make sense if reduced error "
                "pruning is not selected."
            )

        prune = PruneConfig(
            unpruned=unpruned,
            confidence_factor=_parse(float, confidence, "-C", 0.25),
            min_leaf_instances=_parse(int, min_leaf, "-M", 2),
            reduced_error_pruning=reduced,
            num_folds=_parse(int, folds, "-N", 3),
            seed=_parse(int, seed, "-Q", 1),
            binary_splits=binary,
            subtree_raising=not no_raising,
        )
        settings = dict(
            forest_size=_parse(int, forest, "-I", OPTIONS_FOREST_SIZE),
            numeric_strategy=strategy if strategy is not None else NumericStrategy.INTERVAL,
            weight_strategy=weight if weight is not None else WeightStrategy.PRECISION,
            prune=prune,
        )
        settings.update(overrides)
        return cls(**settings)

    def to_options(self) -> list[str]:
        """Render the configuration back into option tokens."""
        prune = self.prune
        options: list[str] = []
        if prune.unpruned:
            options.append("-U")
        else:
            if not prune.subtree_raising:
                options.append("-S")
            if prune.reduced_error_pruning:
                options += ["-R", "-N", str(prune.num_folds), "-Q", str(prune.seed)]
            else:
                options += ["-C", str(prune.confidence_factor)]
        if prune.binary_splits:
            options.append("-B")
        options += ["-M", str(prune.min_leaf_instances)]
        options += ["-I", str(self.forest_size)]
        options += ["-STG", self.numeric_strategy.value]
        options += ["-W", self.weight_strategy.value]
        return options

    def with_prune(self, **changes) -> MITConfig:
        return replace(self, prune=replace(self.prune, **changes))


def validate_forest_size(forest_size) -> int:
    if isinstance(forest_size, bool) or not isinstance(forest_size, int):
        raise ConfigurationError(
            f"forest_size must be an integer, got {forest_size!r}"
        )
    if forest_size <= 0:
        raise ConfigurationError(f"forest_size must be positive, got {forest_size!r}")
    return forest_size


class _OptionReader:
    """Consumes ``-X`` flags and ``-X value`` pairs from a token list."""

    def __init__(self, tokens: Sequence[str]) -> None:
        self._tokens = list(tokens)

    def flag(self, name: str) -> bool:
        key = f"-{name}"
        if key in self._tokens:
            self._tokens.remove(key)
            return True
        return False

    def value(self, name: str) -> Optional[str]:
        key = f"-{name}"
        if key not in self._tokens:
            return None
        i = self._tokens.index(key)
        if i + 1 >= len(self._tokens):
            raise ConfigurationError(f"option {key} needs a value")
        value = self._tokens[i + 1]
        del self._tokens[i:i + 2]
        return value

    def check_empty(self) -> None:
        remaining = [t for t in self._tokens if t]
        if remaining:
            raise ConfigurationError(f"unrecognised options: {' '.join(remaining)}")


def _parse(kind, text: Optional[str], option: str, default):
    if text is None:
        return default
    try:
        return kind(text)
    except ValueError:
        raise ConfigurationError(
            f"option {option} expects a {kind.__name__}, got {text!r}"
        ) from None
