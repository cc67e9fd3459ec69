"""Encoding of typed datasets into the float matrices scikit-learn expects."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import numpy as np
import pandas as pd

from .dataset import AttributeKind, Dataset


@dataclass(frozen=True)
class EncodedColumn:
    """One column of the encoded matrix.

    ``value`` is ``None`` for a numeric attribute and the indicated nominal
    value for an indicator column.
    """

    name: str
    attribute: str
    value: Optional[str] = None

    @property
    def is_indicator(self) -> bool:
        return self.value is not None


class FeatureEncoder:
    """Numeric attributes pass through; each nominal value gets an indicator.

    Missing values become NaN in every column of their attribute, so
    scikit-learn's native missing-value support decides where they go.
    """

    def __init__(self, dataset: Dataset) -> None:
        self.attributes = dataset.attributes
        columns: list[EncodedColumn] = []
        for attribute in dataset.attributes:
            if dataset.kind_of(attribute) is AttributeKind.NUMERIC:
                columns.append(EncodedColumn(attribute, attribute))
            else:
                for value in dataset.nominal_values(attribute):
                    columns.append(EncodedColumn(f"{attribute}={value}", attribute, value))
        self.columns = tuple(columns)

    @property
    def feature_names(self) -> list[str]:
        return [column.name for column in self.columns]

    def transform(self, frame: pd.DataFrame) -> np.ndarray:
        out = np.empty((len(frame), len(self.columns)), dtype=float)
        for j, column in enumerate(self.columns):
            values = frame[column.attribute]
            if column.is_indicator:
                missing = values.isna().to_numpy()
                encoded = (values.astype(object) == column.value).to_numpy(dtype=float)
                encoded[missing] = np.nan
            else:
                encoded = values.to_numpy(dtype=float)
            out[:, j] = encoded
        return out
