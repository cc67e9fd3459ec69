"""Loading datasets from ARFF and CSV files."""

from __future__ import annotations

from typing import Optional, Sequence

import pandas as pd
from scipy.io import arff

from .dataset import Dataset
from .exceptions import ConfigurationError


def load_arff(path, class_attribute: Optional[str] = None) -> Dataset:
    """Read an ARFF file into a :class:`Dataset`.

    Parameters
    ----------
    path : str or path-like
        ARFF file.
    class_attribute : str or None
        Class column; defaults to the last declared attribute.

    Returns
    -------
    Dataset
        Nominal attributes keep their declared value order; ``?`` entries
        become missing values.
    """
    data, meta = arff.loadarff(path)
    names = list(meta.names())
    if class_attribute is None:
        class_attribute = names[-1]
    if class_attribute not in names:
        raise ConfigurationError(
            f"class attribute {class_attribute!r} is not declared in {path!s}"
        )

    frame = pd.DataFrame(data)
    declared = {}
    for name in names:
        kind, values = meta[name]
        if kind == "nominal":
            declared[name] = [str(v) for v in values]
            frame[name] = frame[name].map(_decode)
        elif kind != "numeric":
            raise ConfigurationError(
                f"attribute {name!r} has unsupported ARFF type {kind!r}"
            )

    if meta[class_attribute][0] != "nominal":
        raise ConfigurationError(
            f"class attribute {class_attribute!r} must be nominal"
        )

    for name, values in declared.items():
        frame[name] = pd.Categorical(frame[name], categories=values)

    return Dataset.from_frame(frame, class_attribute, relation=meta.name)


def load_csv(
    path,
    class_attribute: str,
    nominal: Optional[Sequence[str]] = None,
    **read_csv_kwargs,
) -> Dataset:
    """Read a CSV file into a :class:`Dataset`.

    Text columns are nominal; numeric columns listed in *nominal* are
    treated as nominal too. ``?`` and empty cells are missing.
    """
    read_csv_kwargs.setdefault("na_values", ["?"])
    frame = pd.read_csv(path, **read_csv_kwargs)
    return Dataset.from_frame(
        frame,
        class_attribute,
        nominal=nominal,
        relation=str(path),
    )


def _decode(value):
    if isinstance(value, bytes):
        value = value.decode("utf-8")
    if value == "?":
        return None
    return value
