"""
# Results Management

This module provides the data structures that carry model outputs from one
stage of the analysis to the next and serialize them to tables.

## Classes

- `MetricResult`: Summary metrics of one trajectory
- `OutputError`: Record of a design row whose run failed
- `RowResult`: Outcome of one design row (metrics or error)
- `NotComputable`: Explicit marker for an undefined Sobol index
- `SobolIndexResult`: Indices and bootstrap intervals for one (metric, parameter)
- `SobolResults`: All indices of an analysis, keyed by metric then parameter

## Example Usage

```python
from forest_tools.utils.results import SobolResults

results = sa.analyze(A, B)
results['mean_value']['K'].first_order
table = results.to_frame()   # rows keyed by (metric, parameter)
results.save('/results/directory')
```
"""

from dataclasses import dataclass, asdict, fields
from typing import Optional, Union
import pandas as pd
import numpy as np
import os


@dataclass(frozen=True)
class MetricResult:
    """
    Summary metrics of a single trajectory.

    Attributes:
        peak_value (float): Maximum state value.
        peak_time (float): Earliest time at which peak_value is reached.
        mean_value (float): Unweighted mean state over the reported times.
    """
    peak_value: float
    peak_time: float
    mean_value: float

    def to_dict(self):
        return asdict(self)


METRIC_NAMES = tuple(f.name for f in fields(MetricResult))
"""Names of the metrics a `MetricResult` carries, in column order."""


@dataclass(frozen=True)
class OutputError:
    """
    A failed design row.

    Attributes:
        kind (str): Exception class name (e.g. 'InvalidParameter').
        message (str): Exception message.
    """
    kind: str
    message: str

    @classmethod
    def from_exception(cls, exc: Exception) -> "OutputError":
        return cls(kind=type(exc).__name__, message=str(exc))


@dataclass(frozen=True)
class RowResult:
    """
    Outcome of evaluating one design row.

    Exactly one of `metrics` and `error` is set.
    """
    row: int
    metrics: Optional[MetricResult] = None
    error: Optional[OutputError] = None

    @property
    def valid(self) -> bool:
        return self.error is None


def rows_to_frame(rows: list[RowResult]) -> pd.DataFrame:
    """
    Build the metrics table from row results.

    The frame is indexed by design row position and has one column per
    metric plus 'valid' and 'error'. Failed rows carry NaN metrics and the
    error kind.
    """
    records = []
    for res in rows:
        record = {"row": res.row}
        if res.metrics is not None:
            record.update(res.metrics.to_dict())
        else:
            record.update({name: np.nan for name in METRIC_NAMES})
        record["valid"] = res.valid
        record["error"] = res.error.kind if res.error is not None else None
        records.append(record)

    columns = ["row", *METRIC_NAMES, "valid", "error"]
    return pd.DataFrame.from_records(records, columns=columns).set_index("row")


@dataclass(frozen=True)
class NotComputable:
    """
    Marker for an index that is undefined for the given outputs.

    Used instead of NaN so callers cannot mistake an undefined index for a
    numeric one (e.g. when the pooled output variance is zero).
    """
    reason: str


Estimate = Union[float, NotComputable]
Interval = Union[tuple[float, float], NotComputable]


@dataclass(frozen=True)
class SobolIndexResult:
    """
    First-order and total Sobol indices for one (metric, parameter) pair.

    Attributes:
        first_order (float | NotComputable): First-order index estimate.
        first_order_conf (tuple | NotComputable): Bootstrap (low, high).
        total (float | NotComputable): Total index estimate.
        total_conf (tuple | NotComputable): Bootstrap (low, high).
        n_used (int): Number of base samples with a valid A, B and C_p row.
        failed_rows (int): Number of failed design rows for the metric.
    """
    first_order: Estimate
    first_order_conf: Interval
    total: Estimate
    total_conf: Interval
    n_used: int
    failed_rows: int

    @property
    def computable(self) -> bool:
        return not isinstance(self.first_order, NotComputable)

    @classmethod
    def not_computable(cls, reason: str, n_used: int, failed_rows: int):
        marker = NotComputable(reason)
        return cls(marker, marker, marker, marker, n_used, failed_rows)

    def to_row(self) -> dict:
        """Flatten into one row of the Sobol index table."""
        def value(v):
            return np.nan if isinstance(v, NotComputable) else float(v)

        def bounds(ci):
            return (np.nan, np.nan) if isinstance(ci, NotComputable) else ci

        s1_low, s1_high = bounds(self.first_order_conf)
        st_low, st_high = bounds(self.total_conf)
        return {
            "first_order": value(self.first_order),
            "first_order_CI_low": s1_low,
            "first_order_CI_high": s1_high,
            "total": value(self.total),
            "total_CI_low": st_low,
            "total_CI_high": st_high,
            "n_used": self.n_used,
            "failed_rows": self.failed_rows,
            "status": "ok" if self.computable else "not_computable",
        }


class SobolResults(dict[str, dict[str, SobolIndexResult]]):
    """
    Sobol indices of an analysis, keyed by metric name then parameter name.

    Besides the indices, the results keep the metrics table of every design
    row and the number of failed rows per metric, so callers can judge how
    reliable each index is.

    Example:
        ```python
        results = sa.analyze(A, B)

        k_effect = results['peak_value']['K']
        if k_effect.computable:
            print(k_effect.first_order, k_effect.first_order_conf)

        print(results.failed_rows)          # {'peak_value': 0, ...}
        print(results.to_frame().head())
        ```
    """

    def __init__(
        self,
        indices: dict = None,
        metrics_table: pd.DataFrame = None,
        failed_rows: dict[str, int] = None
    ):
        super().__init__(indices or {})
        self.metrics_table = metrics_table
        self.failed_rows = failed_rows or {}

    def to_frame(self) -> pd.DataFrame:
        """
        The Sobol index table.

        Returns:
            pd.DataFrame: One row per (metric, parameter) with index columns,
                bootstrap bounds, 'n_used', 'failed_rows' and 'status'.
                Not computable entries have status 'not_computable'.
        """
        records = [
            {"metric": metric, "parameter": param, **res.to_row()}
            for metric, by_param in self.items()
            for param, res in by_param.items()
        ]
        frame = pd.DataFrame.from_records(records)
        if frame.empty:
            return frame
        return frame.set_index(["metric", "parameter"])

    def save(self, directory: str):
        """
        Save the index table and metrics table as CSV files.

        Writes 'sobol_indices.csv' and, when available, 'metrics.csv' into
        an existing directory. Existing files are overwritten.
        """
        self.to_frame().to_csv(os.path.join(directory, "sobol_indices.csv"))
        if self.metrics_table is not None:
            self.metrics_table.to_csv(os.path.join(directory, "metrics.csv"))
