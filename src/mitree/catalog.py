"""Per-attribute numeric summaries used to bound open split intervals."""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Optional

import numpy as np

from .dataset import AttributeKind, Dataset
from .exceptions import ContractViolation


@dataclass(frozen=True)
class AttributeSummary:
    """Observed range of a numeric attribute.

    ``min``/``max``/``mean`` are NaN when the attribute has no observed value.
    """

    name: str
    kind: AttributeKind
    min: float
    max: float
    mean: float

    @property
    def has_values(self) -> bool:
        return not (np.isnan(self.min) or np.isnan(self.max))

    @property
    def midrange(self) -> float:
        return (self.min + self.max) / 2


class AttributeCatalog:
    """Read-only mapping of numeric attribute name to :class:`AttributeSummary`."""

    def __init__(self, summaries: Mapping[str, AttributeSummary]) -> None:
        self._summaries = MappingProxyType(dict(summaries))

    @classmethod
    def build(cls, dataset: Dataset) -> AttributeCatalog:
        """Scan every numeric attribute of *dataset* once."""
        summaries: dict[str, AttributeSummary] = {}
        for name in dataset.numeric_attributes:
            values = dataset.frame[name].to_numpy(dtype=float)
            observed = ~np.isnan(values)
            if observed.any():
                weights = dataset.weights[observed]
                kept = values[observed]
                if weights.sum() > 0:
                    mean = float(np.average(kept, weights=weights))
                else:
                    mean = float(kept.mean())
                summary = AttributeSummary(
                    name=name,
                    kind=AttributeKind.NUMERIC,
                    min=float(kept.min()),
                    max=float(kept.max()),
                    mean=mean,
                )
            else:
                summary = AttributeSummary(
                    name=name,
                    kind=AttributeKind.NUMERIC,
                    min=float("nan"),
                    max=float("nan"),
                    mean=float("nan"),
                )
            summaries[name] = summary
        return cls(summaries)

    def lookup(self, name: str) -> Optional[AttributeSummary]:
        return self._summaries.get(name)

    def require(self, name: str) -> AttributeSummary:
        summary = self._summaries.get(name)
        if summary is None:
            raise ContractViolation(
                f"numeric attribute {name!r} is not in the attribute catalog"
            )
        return summary

    def __contains__(self, name: object) -> bool:
        return name in self._summaries

    def __iter__(self):
        return iter(self._summaries.values())

    def __len__(self) -> int:
        return len(self._summaries)
