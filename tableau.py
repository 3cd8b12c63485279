"""Exact tableau simplex driven to a nonnegative right-hand side."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal, localcontext
from enum import Enum
from typing import Iterable, List, Mapping, Optional, Sequence, Tuple, Union

Number = Union[int, str, float, Decimal]


class TableauError(RuntimeError):
    """Base class for tableau failures."""


class ConstraintShapeError(TableauError, ValueError):
    """Raised when constraints do not share one column layout."""


class ConvergenceError(TableauError):
    """Raised when a solve stops before every right-hand side is nonnegative."""


def to_decimal(value: Number) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


@dataclass
class Constraint:
    """Named coefficients plus an integer right-hand side."""

    values: dict[str, Decimal] = field(default_factory=dict)
    rhs: int = 0

    def add(self, name: str, value: Number) -> None:
        self.values[name] = to_decimal(value)


class Entry:
    __slots__ = ("_name", "value")

    def __init__(self, name: str, value: Number) -> None:
        self._name = name
        self.value = to_decimal(value)

    @property
    def name(self) -> str:
        return self._name

    def set_value(self, value: Number) -> None:
        self.value = to_decimal(value)

    def __repr__(self) -> str:
        return f"Entry({self._name!r}, {self.value})"


class RowState(Enum):
    RAW = "raw"
    NORMALIZED = "normalized"


class Row:
    """One tableau line: entries in registry order and a right-hand side."""

    def __init__(self, columns: Sequence[str], values: Mapping[str, Number], rhs: Number) -> None:
        self.entries: List[Entry] = [Entry(name, values.get(name, 0)) for name in columns]
        self.rhs = to_decimal(rhs)
        self.state = RowState.RAW
        self.normalized_column: Optional[int] = None

    @property
    def values(self) -> List[Decimal]:
        return [entry.value for entry in self.entries]

    def normalize_with_pivot(self, pivot_index: int) -> None:
        """Scale the row so the entry at ``pivot_index`` becomes 1.

        A zero pivot value cannot be divided by; the row is zeroed instead.
        """
        pivot_value = self.entries[pivot_index].value
        if pivot_value == 0:
            for entry in self.entries:
                entry.set_value(0)
            self.rhs = Decimal(0)
        else:
            for entry in self.entries:
                entry.set_value(entry.value / pivot_value)
            self.rhs = self.rhs / pivot_value
        self.state = RowState.NORMALIZED
        self.normalized_column = pivot_index

    def is_pivot_element_normalized(self, pivot_index: int) -> bool:
        return self.state is RowState.NORMALIZED and self.normalized_column == pivot_index

    def zeroing_by_pivot_row(self, pivot_index: int, pivot_row: Row) -> None:
        """Eliminate this row's entry at ``pivot_index`` using ``pivot_row``."""
        if not pivot_row.is_pivot_element_normalized(pivot_index):
            pivot_row.normalize_with_pivot(pivot_index)

        factor = -self.entries[pivot_index].value
        for entry, pivot_entry in zip(self.entries, pivot_row.entries):
            entry.set_value(entry.value + pivot_entry.value * factor)
        self.rhs += pivot_row.rhs * factor
        self.state = RowState.RAW
        self.normalized_column = None


@dataclass(frozen=True)
class PivotRecord:
    iteration: int
    row: int
    column: int
    column_name: str
    min_rhs: Decimal
    target_rhs: Decimal

    def to_dict(self) -> dict[str, object]:
        return {
            "iteration": self.iteration,
            "row": self.row,
            "column": self.column,
            "column_name": self.column_name,
            "min_rhs": str(self.min_rhs),
            "target_rhs": str(self.target_rhs),
        }


@dataclass(frozen=True)
class TableauSolution:
    status: str
    iterations: int
    pivots: List[PivotRecord]

    def raise_for_status(self) -> None:
        if self.status != "feasible":
            raise ConvergenceError(
                f"tableau stopped with status {self.status!r} after {self.iterations} pivots"
            )


class Tableau:
    """Constraint rows plus one cost row over a shared column registry.

    Values are ``Decimal``. Divisions during ``solve`` run in a local context
    of ``precision`` significant digits (50 by default), so quotients such as
    1/3 are rounded at that precision rather than held exactly.

    ``basis[i]`` is the column basic in constraint row ``i``, or ``None``.
    Rows start out with their identity column, when they have one, and each
    pivot makes the entering column basic in the pivot row.
    """

    def __init__(
        self,
        constraints: Iterable[Constraint],
        target_function: Constraint,
        *,
        max_iterations: int = 10_000,
        precision: int = 50,
    ) -> None:
        constraints = list(constraints)
        if max_iterations < 0:
            raise ValueError("max_iterations must be non-negative")
        if precision <= 0:
            raise ValueError("precision must be positive")
        self.columns: Tuple[str, ...] = self._column_registry(constraints, target_function)
        self.rows: List[Row] = [Row(self.columns, c.values, c.rhs) for c in constraints]
        self.target = Row(self.columns, target_function.values, target_function.rhs)
        self.pivot: Optional[Tuple[int, int]] = None
        self.basis: List[Optional[int]] = self._initial_basis()
        self._max_iterations = max_iterations
        self._precision = precision

    @staticmethod
    def _column_registry(
        constraints: Sequence[Constraint], target_function: Constraint
    ) -> Tuple[str, ...]:
        if not constraints:
            return tuple(target_function.values)
        columns = tuple(constraints[0].values)
        expected = set(columns)
        for idx, constraint in enumerate(constraints):
            if len(constraint.values) != len(columns):
                raise ConstraintShapeError(
                    f"constraint {idx} has {len(constraint.values)} columns, expected {len(columns)}"
                )
            if set(constraint.values) != expected:
                unknown = sorted(set(constraint.values) - expected)
                raise ConstraintShapeError(f"constraint {idx} has unknown columns {unknown}")
        unknown = sorted(set(target_function.values) - expected)
        if unknown:
            raise ConstraintShapeError(f"target function has unknown columns {unknown}")
        return columns

    def _initial_basis(self) -> List[Optional[int]]:
        basis: List[Optional[int]] = []
        for idx in range(len(self.rows)):
            found = None
            for col in range(len(self.columns)):
                if col in basis:
                    continue
                column = [row.entries[col].value for row in self.rows]
                if all(value == (1 if r == idx else 0) for r, value in enumerate(column)):
                    found = col
                    break
            basis.append(found)
        return basis

    def basic_values(self) -> dict[str, Decimal]:
        """Map every column to its value in the current basic solution."""
        values = {name: Decimal(0) for name in self.columns}
        for row, col in zip(self.rows, self.basis):
            if col is not None:
                values[self.columns[col]] = row.rhs
        return values

    def as_matrix(self) -> List[List[Decimal]]:
        return [row.values + [row.rhs] for row in (*self.rows, self.target)]

    def is_solved(self) -> bool:
        return all(row.rhs >= 0 for row in self.rows)

    def solve(self) -> TableauSolution:
        with localcontext() as ctx:
            ctx.prec = self._precision
            return self._solve()

    def _solve(self) -> TableauSolution:
        pivots: List[PivotRecord] = []
        status = "iteration_limit"
        iterations = 0

        while True:
            if self.is_solved():
                status = "feasible"
                break
            if iterations >= self._max_iterations:
                break
            pivot = self._calculate_pivot()
            if pivot is None:
                status = "infeasible"
                break
            iterations += 1
            self.pivot = pivot
            row_index, column_index = pivot
            pivot_row = self.rows[row_index]
            min_rhs = pivot_row.rhs

            pivot_row.normalize_with_pivot(column_index)
            for idx, row in enumerate(self.rows):
                if idx == row_index:
                    continue
                row.zeroing_by_pivot_row(column_index, pivot_row)
            self.target.zeroing_by_pivot_row(column_index, pivot_row)
            self.basis[row_index] = column_index

            pivots.append(
                PivotRecord(
                    iteration=iterations,
                    row=row_index,
                    column=column_index,
                    column_name=self.columns[column_index],
                    min_rhs=min_rhs,
                    target_rhs=self.target.rhs,
                )
            )

        return TableauSolution(status=status, iterations=iterations, pivots=pivots)

    def _calculate_pivot(self) -> Optional[Tuple[int, int]]:
        row_index = self._choose_pivot_row()
        column_index = self._choose_pivot_column(self.rows[row_index])
        if column_index is None:
            return None
        return row_index, column_index

    def _choose_pivot_row(self) -> int:
        min_rhs = min(row.rhs for row in self.rows)
        return next(idx for idx, row in enumerate(self.rows) if row.rhs == min_rhs)

    def _choose_pivot_column(self, pivot_row: Row) -> Optional[int]:
        best: Optional[Tuple[Decimal, int]] = None
        for idx, (target_entry, entry) in enumerate(zip(self.target.entries, pivot_row.entries)):
            if entry.value >= 0:
                continue
            ratio = abs(target_entry.value / entry.value)
            if best is None or ratio < best[0]:
                best = (ratio, idx)
        if best is None:
            return None
        return best[1]
