"""Tabular dataset with typed attributes, a nominal class and row weights."""

from __future__ import annotations

from enum import Enum
from logging import getLogger
from typing import Dict, Iterator, Mapping, Optional, Sequence

import numpy as np
import pandas as pd
from pandas.api.types import is_bool_dtype, is_numeric_dtype

from .exceptions import ConfigurationError, ContractViolation

logger = getLogger(__name__)


class AttributeKind(str, Enum):
    NOMINAL = "nominal"
    NUMERIC = "numeric"


def is_missing(value) -> bool:
    """True for ``None`` and float NaN."""
    if value is None:
        return True
    try:
        return bool(np.isnan(value))
    except TypeError:
        return False


class Dataset:
    """An ordered collection of weighted rows.

    Parameters
    ----------
    frame : pandas.DataFrame
        Attribute columns only (the class is held separately).
    target : pandas.Series
        Class value of every row.
    class_values : sequence of str
        The fixed set of admissible class values, in declaration order.
    weights : array-like or None
        Non-negative instance weights (default 1.0 per row).
    kinds : mapping of str to AttributeKind
        Kind of every attribute column.
    nominal_values : mapping of str to tuple of str
        Declared value set of every nominal attribute.
    class_attribute : str
        Name of the class column.
    relation : str
        Free-form dataset name used in reports.
    """

    def __init__(
        self,
        frame: pd.DataFrame,
        target: pd.Series,
        class_values: Sequence[str],
        *,
        weights=None,
        kinds: Mapping[str, AttributeKind],
        nominal_values: Mapping[str, Sequence[str]],
        class_attribute: str = "class",
        relation: str = "dataset",
    ) -> None:
        self.frame = frame.reset_index(drop=True)
        self.target = pd.Series(target).reset_index(drop=True).astype(object)
        self.class_values = tuple(str(v) for v in class_values)
        self.class_attribute = class_attribute
        self.relation = relation
        self._kinds = {name: AttributeKind(kinds[name]) for name in self.frame.columns}
        self._nominal_values = {
            name: tuple(str(v) for v in values)
            for name, values in nominal_values.items()
        }

        if weights is None:
            self.weights = np.ones(len(self.frame), dtype=float)
        else:
            self.weights = np.asarray(weights, dtype=float).reshape(-1)

        if len(self.weights) != len(self.frame) or len(self.target) != len(self.frame):
            raise ConfigurationError(
                f"frame, target and weights must have the same length, got "
                f"{len(self.frame)}, {len(self.target)} and {len(self.weights)}"
            )
        if np.any(self.weights < 0) or np.any(np.isnan(self.weights)):
            raise ConfigurationError("instance weights must be non-negative numbers")
        if not self.class_values:
            raise ConfigurationError("a dataset needs at least one class value")
        unknown = set(self.target.astype(str)) - set(self.class_values)
        if unknown:
            raise ConfigurationError(
                f"class values {sorted(unknown)!r} are not in the declared set "
                f"{self.class_values!r}"
            )

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def from_frame(
        cls,
        df: pd.DataFrame,
        class_attribute: str,
        *,
        weights=None,
        nominal: Optional[Sequence[str]] = None,
        class_values: Optional[Sequence[str]] = None,
        relation: str = "dataset",
    ) -> Dataset:
        """Build a dataset from a DataFrame that includes the class column.

        Object, categorical and boolean columns are nominal; numeric columns
        are numeric unless listed in *nominal*. Rows with a missing class are
        dropped.
        """
        if class_attribute not in df.columns:
            raise ConfigurationError(
                f"class attribute {class_attribute!r} is not a column of the frame"
            )
        nominal = set(nominal or ())
        weights = np.ones(len(df)) if weights is None else np.asarray(weights, dtype=float)

        missing_class = df[class_attribute].isna().to_numpy()
        if missing_class.any():
            logger.warning(
                "Dropping %d row(s) with a missing class value", int(missing_class.sum())
            )
            df = df.loc[~missing_class]
            weights = weights[~missing_class]

        features = df.drop(columns=[class_attribute]).copy()
        kinds: Dict[str, AttributeKind] = {}
        nominal_values: Dict[str, tuple[str, ...]] = {}
        for name in features.columns:
            column = features[name]
            if name in nominal or not is_numeric_dtype(column) or is_bool_dtype(column):
                kinds[name] = AttributeKind.NOMINAL
                if isinstance(column.dtype, pd.CategoricalDtype):
                    values = [str(v) for v in column.cat.categories]
                else:
                    values = sorted({str(v) for v in column.dropna()})
                nominal_values[name] = tuple(values)
                features[name] = column.astype(object).map(
                    lambda v: None if is_missing(v) else str(v)
                )
            else:
                kinds[name] = AttributeKind.NUMERIC
                features[name] = column.astype(float)

        target = df[class_attribute].astype(str)
        if class_values is None:
            column = df[class_attribute]
            if isinstance(column.dtype, pd.CategoricalDtype):
                class_values = [str(v) for v in column.cat.categories]
            else:
                class_values = sorted(set(target))

        return cls(
            features,
            target,
            class_values,
            weights=weights,
            kinds=kinds,
            nominal_values=nominal_values,
            class_attribute=class_attribute,
            relation=relation,
        )

    def with_rows(self, frame: pd.DataFrame, target: Sequence[str], weights) -> Dataset:
        """Return a dataset with this schema and the given rows."""
        return Dataset(
            frame[list(self.attributes)],
            pd.Series(list(target), dtype=object),
            self.class_values,
            weights=weights,
            kinds=self._kinds,
            nominal_values=self._nominal_values,
            class_attribute=self.class_attribute,
            relation=self.relation,
        )

    def subset(self, indices) -> Dataset:
        indices = np.asarray(indices, dtype=int)
        return self.with_rows(
            self.frame.iloc[indices].reset_index(drop=True),
            self.target.iloc[indices].tolist(),
            self.weights[indices],
        )

    # ------------------------------------------------------------------
    # Schema
    # ------------------------------------------------------------------

    @property
    def attributes(self) -> tuple[str, ...]:
        return tuple(self.frame.columns)

    def kind_of(self, name: str) -> AttributeKind:
        try:
            return self._kinds[name]
        except KeyError:
            raise ContractViolation(
                f"attribute {name!r} is not part of dataset {self.relation!r}"
            ) from None

    def nominal_values(self, name: str) -> tuple[str, ...]:
        if self.kind_of(name) is not AttributeKind.NOMINAL:
            raise ContractViolation(f"attribute {name!r} is not nominal")
        return self._nominal_values[name]

    @property
    def numeric_attributes(self) -> tuple[str, ...]:
        return tuple(a for a in self.attributes if self._kinds[a] is AttributeKind.NUMERIC)

    @property
    def nominal_attributes(self) -> tuple[str, ...]:
        return tuple(a for a in self.attributes if self._kinds[a] is AttributeKind.NOMINAL)

    # ------------------------------------------------------------------
    # Weight totals
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self.frame)

    @property
    def num_classes(self) -> int:
        return len(self.class_values)

    @property
    def total_weight(self) -> float:
        return float(self.weights.sum())

    def class_weights(self) -> Dict[str, float]:
        """Sum of instance weights per class value (zero for absent classes)."""
        totals = {value: 0.0 for value in self.class_values}
        for value, weight in zip(self.target, self.weights):
            totals[str(value)] += float(weight)
        return totals

    def rows(self) -> Iterator[dict]:
        """Yield every row as an ``{attribute: value}`` mapping (``None`` = missing)."""
        for record in self.frame.to_dict(orient="records"):
            yield {k: (None if is_missing(v) else v) for k, v in record.items()}

    def __repr__(self) -> str:
        return (
            f"Dataset(relation={self.relation!r}, rows={len(self)}, "
            f"attributes={len(self.attributes)}, classes={self.class_values!r})"
        )
