"""Incremental column accumulator for streaming table updates.

This module defines the delta payload delivered by table subscriptions
(:class:`TableUpdate`) and :class:`ChartData`, the per-table cache that folds
those deltas into ordered rows and materializes column arrays on demand.

Rows are kept in ascending row-key order. Column arrays are cached and only
rebuilt when an update touches them: adding or removing rows invalidates
every column, while modifications invalidate just the modified columns.
"""

from __future__ import annotations

import bisect
import logging
import math
from collections.abc import Callable, Hashable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import numpy as np

logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())

ValueUnwrapper = Callable[[Any], Any]


def unwrap_value(value: Any) -> Any:
    """Convert a table cell to a plain, JSON-friendly Python value.

    - ``numpy.datetime64`` becomes an ISO-8601 string,
    - other numpy scalars become their Python equivalents,
    - float NaN becomes ``None`` so Plotly renders a gap.

    Anything else is returned unchanged.
    """
    if isinstance(value, np.datetime64):
        if np.isnat(value):
            return None
        return str(np.datetime_as_string(value))
    if isinstance(value, np.generic):
        value = value.item()
    if isinstance(value, float) and math.isnan(value):
        return None
    return value


@dataclass(frozen=True)
class TableUpdate:
    """Incremental delta for one table update event.

    Parameters
    ----------
    added : Mapping
        Row key to ``{column: value}`` for rows inserted by this update.
    removed : Sequence
        Row keys deleted by this update.
    modified : Mapping
        Row key to ``{column: value}`` for changed cells of existing rows.
    """

    added: Mapping[Hashable, Mapping[str, Any]] = field(default_factory=dict)
    removed: Sequence[Hashable] = ()
    modified: Mapping[Hashable, Mapping[str, Any]] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not (self.added or self.removed or self.modified)

    def modified_columns(self) -> set[str]:
        """Return the names of columns changed by ``modified`` rows."""
        names: set[str] = set()
        for row in self.modified.values():
            names.update(row.keys())
        return names

    def filtered(self, columns: Sequence[str]) -> "TableUpdate":
        """Return a copy restricted to ``columns``."""
        keep = set(columns)
        return TableUpdate(
            added={key: {c: v for c, v in row.items() if c in keep} for key, row in self.added.items()},
            removed=tuple(self.removed),
            modified={
                key: {c: v for c, v in row.items() if c in keep}
                for key, row in self.modified.items()
                if any(c in keep for c in row)
            },
        )


class ChartData:
    """Accumulate streaming updates for one table and expose column arrays.

    Parameters
    ----------
    table : Any
        Table whose subscription feeds this accumulator. Its ``columns``
        define which column names are known.
    """

    def __init__(self, table: Any) -> None:
        self.table = table
        self._column_names = tuple(column.name for column in getattr(table, "columns", ()))
        self._keys: List[Hashable] = []
        self._rows: Dict[Hashable, Dict[str, Any]] = {}
        self._cache: Dict[tuple[str, Any], List[Any]] = {}

    def __contains__(self, column: object) -> bool:
        return column in self._column_names

    def __len__(self) -> int:
        return len(self._keys)

    @property
    def column_names(self) -> tuple[str, ...]:
        return self._column_names

    def update(self, update: TableUpdate) -> None:
        """Fold ``update`` into the accumulated rows.

        Removals are applied first, then additions, then modifications, so a
        row key may be removed and re-added within the same update.
        """
        structural = False
        for key in update.removed:
            if key in self._rows:
                del self._rows[key]
                index = bisect.bisect_left(self._keys, key)
                del self._keys[index]
                structural = True

        for key, row in update.added.items():
            if key not in self._rows:
                bisect.insort(self._keys, key)
            self._rows[key] = dict(row)
            structural = True

        unknown = []
        for key, row in update.modified.items():
            existing = self._rows.get(key)
            if existing is None:
                unknown.append(key)
                continue
            existing.update(row)
        if unknown:
            logger.warning(f"Modified rows {unknown!r} were never added to {self.table!r}; ignoring them")

        if structural:
            self._cache.clear()
        else:
            touched = update.modified_columns()
            for cache_key in [k for k in self._cache if k[0] in touched]:
                del self._cache[cache_key]

    def rows(self) -> Dict[Hashable, Dict[str, Any]]:
        """Return a copy of the accumulated rows in row-key order."""
        return {key: dict(self._rows[key]) for key in self._keys}

    def get_column(
        self,
        name: str,
        unwrap: Optional[ValueUnwrapper] = None,
        update: Optional[TableUpdate] = None,
    ) -> List[Any]:
        """Return the current values of column ``name`` in row order.

        Parameters
        ----------
        name : str
            Column to materialize.
        unwrap : callable, optional
            Per-cell transform; defaults to :func:`unwrap_value`.
        update : TableUpdate, optional
            The update that triggered this read. Accepted for parity with
            streaming clients that compute snapshots from the delta; the
            accumulator state already reflects it.

        Raises
        ------
        KeyError
            If ``name`` is not a column of the table.
        """
        if name not in self._column_names:
            raise KeyError(f"Unknown column: {name}")
        convert = unwrap if unwrap is not None else unwrap_value
        cached = self._cache.get((name, convert))
        if cached is None:
            cached = [convert(self._rows[key].get(name)) for key in self._keys]
            self._cache[(name, convert)] = cached
        # Callers store the list in the document; hand out a fresh one.
        return list(cached)


__all__ = ["ChartData", "TableUpdate", "ValueUnwrapper", "unwrap_value"]
