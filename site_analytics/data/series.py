"""
Chart-ready series: ``{labels, datasets: [{label, data}]}`` payloads that any
charting component can consume.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

import pandas as pd

# Marker for "no value" points (never a zero produced by dividing by zero)
NO_VALUE = None


def clean_value(value: Any) -> Optional[float]:
    if value is None:
        return NO_VALUE
    try:
        if pd.isna(value):
            return NO_VALUE
    except (TypeError, ValueError):
        return NO_VALUE
    return float(value)


def iso_date(value: pd.Timestamp) -> str:
    return pd.Timestamp(value).date().isoformat()


def date_axis(start: Optional[pd.Timestamp], end: Optional[pd.Timestamp]) -> List[pd.Timestamp]:
    """Every calendar day in [start, end]; empty when either bound is missing or inverted."""
    if start is None or end is None or start > end:
        return []
    return list(pd.date_range(start, end, freq="D"))


@dataclass(frozen=True)
class Dataset:
    label: str
    data: Tuple[Optional[float], ...]
    kind: str = "data"  # "data" | "norm"

    def to_dict(self) -> Dict[str, Any]:
        return {"label": self.label, "data": list(self.data)}


@dataclass(frozen=True)
class ChartSeries:
    labels: Tuple[str, ...]
    datasets: Tuple[Dataset, ...]
    # Raw values behind each label (e.g. equipment ids behind display names)
    keys: Optional[Tuple[str, ...]] = None

    @classmethod
    def empty(cls) -> "ChartSeries":
        return cls(labels=(), datasets=())

    @classmethod
    def build(
        cls,
        labels: Iterable[Any],
        datasets: Iterable[Tuple[str, Iterable[Any]]],
        keys: Optional[Iterable[Any]] = None,
    ) -> "ChartSeries":
        return cls(
            labels=tuple(str(label) for label in labels),
            datasets=tuple(Dataset(label, tuple(clean_value(v) for v in data)) for label, data in datasets),
            keys=tuple(str(k) for k in keys) if keys is not None else None,
        )

    @property
    def is_empty(self) -> bool:
        return not self.labels or not self.datasets

    def dataset(self, label: str) -> Optional[Dataset]:
        return next((ds for ds in self.datasets if ds.label == label), None)

    def key_for(self, label: str) -> str:
        if self.keys is None:
            return label
        return self.keys[self.labels.index(label)]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "labels": list(self.labels),
            "datasets": [dataset.to_dict() for dataset in self.datasets],
        }

    def to_frame(self, index_name: str = "label") -> pd.DataFrame:
        """Long-form frame (label, series, value) for Plotly Express."""
        rows = [
            {index_name: label, "series": dataset.label, "value": value}
            for dataset in self.datasets
            for label, value in zip(self.labels, dataset.data)
        ]
        return pd.DataFrame(rows, columns=[index_name, "series", "value"])


def category_counts(
    df: pd.DataFrame,
    column: str,
    dataset_label: str,
    order: Optional[Sequence[str]] = None,
    fill: str = "Unknown",
) -> ChartSeries:
    if df.empty or column not in df:
        return ChartSeries.empty()
    values = df[column].astype(object).where(df[column].notna(), fill)
    counts = values.value_counts()
    if order:
        labels = [label for label in order if label in counts.index]
        labels += sorted(label for label in counts.index if label not in labels)
    else:
        labels = sorted(counts.index)
    return ChartSeries.build(labels, [(dataset_label, [int(counts[label]) for label in labels])])
