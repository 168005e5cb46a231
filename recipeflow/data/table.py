"""In-memory tabular dataset with declared column types."""

from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd

from ..exceptions import SchemaError


class ColumnType(str, Enum):
    NUMERIC = "numeric"
    NOMINAL = "nominal"
    ORDINAL = "ordinal"
    DATETIME = "datetime"
    IDENTIFIER = "identifier"


def infer_column_type(series: pd.Series) -> ColumnType:
    """Infer a semantic type from a pandas dtype."""
    dtype = series.dtype
    if pd.api.types.is_bool_dtype(dtype) or pd.api.types.is_numeric_dtype(dtype):
        return ColumnType.NUMERIC
    if pd.api.types.is_datetime64_any_dtype(dtype):
        return ColumnType.DATETIME
    if isinstance(dtype, pd.CategoricalDtype) and dtype.ordered:
        return ColumnType.ORDINAL
    return ColumnType.NOMINAL


class Table:
    """
    Ordered collection of equally long named columns.

    A Table owns a private copy of its frame. Every operation returns a new
    Table; none of them mutates an existing one. Row positions are always
    ``0..n_rows-1`` so indices handed out by resamplers stay valid.
    """

    def __init__(
        self,
        frame: pd.DataFrame,
        types: Optional[Mapping[str, Union[ColumnType, str]]] = None,
        _copy: bool = True,
    ):
        if not isinstance(frame, pd.DataFrame):
            frame = pd.DataFrame(frame)
        if frame.columns.duplicated().any():
            duplicated = frame.columns[frame.columns.duplicated()].tolist()
            raise SchemaError(f"Duplicate column names: {duplicated}", duplicated)

        if _copy:
            frame = frame.reset_index(drop=True).copy()
        self._frame = frame

        declared = dict(types or {})
        unknown = [c for c in declared if c not in frame.columns]
        if unknown:
            raise SchemaError(f"Types declared for unknown columns: {unknown}", unknown)

        self._types: Dict[str, ColumnType] = {
            col: ColumnType(declared[col]) if col in declared else infer_column_type(frame[col])
            for col in frame.columns
        }

    # ------------------------------------------------------------------
    # Construction helpers
    # ------------------------------------------------------------------
    @classmethod
    def from_pandas(cls, frame: pd.DataFrame, types: Optional[Mapping[str, Any]] = None) -> "Table":
        return cls(frame, types)

    @classmethod
    def from_dict(cls, data: Mapping[str, Sequence[Any]], types: Optional[Mapping[str, Any]] = None) -> "Table":
        return cls(pd.DataFrame(dict(data)), types)

    def _derive(self, frame: pd.DataFrame, types: Mapping[str, ColumnType]) -> "Table":
        # Frames built inside Table operations are already private copies
        frame = frame.reset_index(drop=True)
        return Table(frame, {c: types[c] for c in frame.columns if c in types}, _copy=False)

    # ------------------------------------------------------------------
    # Schema
    # ------------------------------------------------------------------
    @property
    def frame(self) -> pd.DataFrame:
        """The underlying frame. Treat as read-only; use ``to_pandas`` for a mutable copy."""
        return self._frame

    @property
    def columns(self) -> List[str]:
        return list(self._frame.columns)

    @property
    def types(self) -> Dict[str, ColumnType]:
        return dict(self._types)

    @property
    def n_rows(self) -> int:
        return int(self._frame.shape[0])

    def __len__(self) -> int:
        return self.n_rows

    def __contains__(self, column: str) -> bool:
        return column in self._types

    def __repr__(self) -> str:
        schema = ", ".join(f"{c}: {t.value}" for c, t in self._types.items())
        return f"Table(n_rows={self.n_rows}, columns=[{schema}])"

    def require(self, columns: Iterable[str]) -> None:
        missing = [c for c in columns if c not in self._types]
        if missing:
            raise SchemaError(f"Columns not found: {missing}", missing)

    def type_of(self, column: str) -> ColumnType:
        self.require([column])
        return self._types[column]

    def column(self, name: str) -> pd.Series:
        self.require([name])
        return self._frame[name].copy()

    def to_pandas(self) -> pd.DataFrame:
        return self._frame.copy()

    def equals(self, other: "Table") -> bool:
        return (
            isinstance(other, Table)
            and self._types == other._types
            and self._frame.equals(other._frame)
        )

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------
    def select(self, columns: Sequence[str]) -> "Table":
        columns = list(columns)
        self.require(columns)
        return self._derive(self._frame[columns].copy(), self._types)

    def drop(self, columns: Sequence[str]) -> "Table":
        columns = list(columns)
        self.require(columns)
        return self._derive(self._frame.drop(columns=columns), self._types)

    def filter(self, predicate: Callable[[pd.DataFrame], Any]) -> "Table":
        """Keep rows for which ``predicate(frame)`` is True, in their original order."""
        mask = np.asarray(predicate(self._frame), dtype=bool)
        if mask.shape != (self.n_rows,):
            raise ValueError(
                f"Filter predicate must return {self.n_rows} booleans, got shape {mask.shape}"
            )
        return self._derive(self._frame.loc[mask].copy(), self._types)

    def with_column(
        self,
        name: str,
        derived: Union[Callable[[pd.DataFrame], Any], Sequence[Any], pd.Series, np.ndarray],
        type: Optional[Union[ColumnType, str]] = None,
    ) -> "Table":
        """Add or replace a column. ``derived`` is a callable on the frame or a sequence of values."""
        values = derived(self._frame) if callable(derived) else derived
        if isinstance(values, pd.Series):
            values = values.to_numpy()
        values = np.asarray(values) if not np.isscalar(values) else values
        if not np.isscalar(values) and len(values) != self.n_rows:
            raise SchemaError(
                f"Column '{name}' has {len(values)} values but the table has {self.n_rows} rows",
                [name],
            )

        frame = self._frame.copy()
        frame[name] = values
        types = dict(self._types)
        types[name] = ColumnType(type) if type is not None else infer_column_type(frame[name])
        return self._derive(frame, types)

    def with_types(self, types: Mapping[str, Union[ColumnType, str]]) -> "Table":
        self.require(types.keys())
        merged = dict(self._types)
        merged.update({c: ColumnType(t) for c, t in types.items()})
        return self._derive(self._frame.copy(), merged)

    def take(self, indices: Sequence[int]) -> "Table":
        positions = self._positions(indices)
        return self._derive(self._frame.iloc[positions].copy(), self._types)

    def split(self, indices: Sequence[int]) -> Tuple["Table", "Table"]:
        """
        Partition rows into (rows at ``indices``, remaining rows).
        Both parts keep the original row order.
        """
        positions = self._positions(indices)
        mask = np.zeros(self.n_rows, dtype=bool)
        mask[positions] = True
        return (
            self._derive(self._frame.loc[mask].copy(), self._types),
            self._derive(self._frame.loc[~mask].copy(), self._types),
        )

    def _positions(self, indices: Sequence[int]) -> np.ndarray:
        positions = np.asarray(indices, dtype=int)
        if positions.size and (positions.min() < 0 or positions.max() >= self.n_rows):
            raise IndexError(f"Row indices out of range for a table with {self.n_rows} rows")
        return positions
