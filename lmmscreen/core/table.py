"""
Tabular data container for lmmscreen.

A Table is the in-memory trial table every model in a screen is fit to:
rows are observations, columns are the response, the grouping factors and
the candidate predictors. It is read-only; operations that drop rows
return a new Table.

Usage:
    from lmmscreen.core.table import Table

    table = Table.from_file("trials.csv")
    table = Table.from_file("trials.txt", delimiter="\\t")
    table = Table.from_dataframe(df)
    table = Table.from_arrays(rt=rt, subject=subject, freq=freq)

    table.columns           # ('rt', 'subject', 'freq')
    rt = table.column('rt') # numpy array
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Sequence

import numpy as np
import pandas as pd
from numpy.typing import NDArray

from lmmscreen.core.exceptions import ValidationError, MissingColumnError


# File suffix → pandas separator. None means the caller must pass one.
_SUFFIX_DELIMITERS: dict[str, str] = {
    '.csv': ',',
    '.tsv': '\t',
    '.tab': '\t',
    '.txt': r'\s+',
    '.dat': r'\s+',
}


@dataclass(frozen=True, eq=False)
class Table:
    """
    Immutable observation table.

    Construct via the from_* classmethods, not directly. Tables compare
    and hash by identity; compare contents with to_dataframe().equals().
    """
    _frame: pd.DataFrame
    _metadata: dict[str, Any] = field(default_factory=dict)

    # === Column Access ===

    @property
    def columns(self) -> tuple[str, ...]:
        """Column names in file order."""
        return tuple(str(c) for c in self._frame.columns)

    @property
    def n_rows(self) -> int:
        """Number of observations."""
        return len(self._frame)

    @property
    def metadata(self) -> dict[str, Any]:
        """Source information (path, delimiter, dropped rows)."""
        return self._metadata.copy()

    def __contains__(self, name: str) -> bool:
        return name in self._frame.columns

    def require(self, names: Sequence[str]) -> None:
        """
        Check that every name is a column of this table.

        Raises:
            MissingColumnError: Naming the first absent column and listing
                the available ones
        """
        for name in names:
            if name not in self._frame.columns:
                raise MissingColumnError(
                    f"Column '{name}' not found in table. "
                    f"Available: {list(self.columns)}",
                    column=name,
                    available=self.columns,
                )

    def column(self, name: str) -> NDArray:
        """
        Return one column as a numpy array (a copy).

        Raises:
            MissingColumnError: If the column does not exist
        """
        self.require([name])
        return self._frame[name].to_numpy(copy=True)

    def is_numeric(self, name: str) -> bool:
        """True for int/float columns. Booleans count as categorical."""
        self.require([name])
        dtype = self._frame[name].dtype
        return (
            pd.api.types.is_numeric_dtype(dtype)
            and not pd.api.types.is_bool_dtype(dtype)
        )

    def missing_counts(self, names: Sequence[str]) -> dict[str, int]:
        """Number of missing values per named column."""
        self.require(names)
        return {name: int(self._frame[name].isna().sum()) for name in names}

    def complete_cases(self, names: Sequence[str]) -> Table:
        """
        Restrict to rows with a value in every named column.

        Args:
            names: Columns that must be non-missing

        Returns:
            A new Table; metadata['n_dropped'] records the rows removed
        """
        self.require(names)
        subset = list(dict.fromkeys(names))
        kept = self._frame.dropna(subset=subset).reset_index(drop=True)
        metadata = self.metadata
        metadata['n_dropped'] = self.n_rows - len(kept)
        return Table(_frame=kept, _metadata=metadata)

    def to_dataframe(self) -> pd.DataFrame:
        """A copy of the underlying DataFrame."""
        return self._frame.copy()

    def __repr__(self) -> str:
        return f"Table(n_rows={self.n_rows}, columns={list(self.columns)})"

    # === Factory Methods ===

    @classmethod
    def from_dataframe(cls, df: pd.DataFrame, *, source_path: str | None = None) -> Table:
        """Construct from a pandas DataFrame (copied)."""
        if df.columns.duplicated().any():
            dupes = sorted(set(df.columns[df.columns.duplicated()]))
            raise ValidationError(f"Duplicate column names: {dupes}")

        metadata: dict[str, Any] = {'source': 'dataframe'}
        if source_path:
            metadata['source'] = 'file'
            metadata['source_path'] = source_path
        return cls(_frame=df.copy(), _metadata=metadata)

    @classmethod
    def from_arrays(cls, **columns: Any) -> Table:
        """Construct from named 1-D arrays of equal length."""
        if not columns:
            raise ValidationError("from_arrays requires at least one column")

        lengths = {name: len(np.asarray(col)) for name, col in columns.items()}
        if len(set(lengths.values())) > 1:
            raise ValidationError(f"Columns have inconsistent lengths: {lengths}")

        df = pd.DataFrame({name: np.asarray(col) for name, col in columns.items()})
        table = cls.from_dataframe(df)
        return cls(_frame=table._frame, _metadata={'source': 'arrays'})

    @classmethod
    def from_file(
        cls,
        path: str | Path,
        *,
        delimiter: str | None = None,
        columns: list[str] | None = None,
        na_values: list[str] | None = None,
    ) -> Table:
        """
        Read a delimited text file.

        Args:
            path: File to read. The delimiter is inferred from the suffix
                (.csv, .tsv, .tab, .txt, .dat) unless given explicitly.
            delimiter: Explicit field separator.
            columns: Optional subset of columns to read.
            na_values: Extra strings to treat as missing, on top of the
                pandas defaults ('', 'NA', 'NaN', ...).

        Raises:
            ValidationError: Unknown suffix with no delimiter, or the
                requested columns are not in the file
        """
        path = Path(path)
        suffix = path.suffix.lower()

        if delimiter is None:
            if suffix not in _SUFFIX_DELIMITERS:
                raise ValidationError(
                    f"Unknown file format: {suffix!r}. Pass delimiter= explicitly "
                    f"or use one of {sorted(_SUFFIX_DELIMITERS)}"
                )
            delimiter = _SUFFIX_DELIMITERS[suffix]

        try:
            df = pd.read_csv(path, sep=delimiter, usecols=columns, na_values=na_values)
        except ValueError as e:
            # pandas reports missing usecols entries as ValueError
            raise ValidationError(f"{path}: {e}") from e

        table = cls.from_dataframe(df, source_path=str(path))
        metadata = table.metadata
        metadata['delimiter'] = delimiter
        return cls(_frame=table._frame, _metadata=metadata)
