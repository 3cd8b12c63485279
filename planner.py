from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Sequence

from catalog import Bundle, CatalogRepository
from requirements import Requirement, gather_constraints, gather_target_function
from tableau import PivotRecord, Tableau, TableauSolution


COVERAGE_TOL = Decimal("1e-20")


class PlanningError(RuntimeError):
    """Raised when no purchase plan can be read from the solved tableau."""


def extract_assignment(
    tableau: Tableau, variables: Optional[Iterable[str]] = None
) -> Dict[str, Decimal]:
    """Read variable values from the tableau's basis.

    Columns basic in a constraint row take that row's right-hand side;
    every other column reads 0.
    """
    values = tableau.basic_values()
    names = list(variables) if variables is not None else list(tableau.columns)
    return {name: values[name] for name in names}


@dataclass(frozen=True)
class PurchasePlan:
    status: str
    purchases: Dict[str, Decimal]
    total_cost: Decimal
    objective: Decimal
    coverage: Dict[str, Decimal]
    iterations: int
    pivots: List[PivotRecord] = field(default_factory=list)

    @property
    def is_integral(self) -> bool:
        return all(qty == qty.to_integral_value() for qty in self.purchases.values())

    def to_dict(self) -> dict[str, object]:
        return {
            "status": self.status,
            "purchases": {name: str(qty) for name, qty in self.purchases.items()},
            "total_cost": str(self.total_cost),
            "objective": str(self.objective),
            "coverage": {name: str(qty) for name, qty in self.coverage.items()},
            "iterations": self.iterations,
        }


class PurchasePlanner:
    def __init__(
        self,
        catalog: CatalogRepository,
        *,
        max_iterations: int = 10_000,
    ) -> None:
        if max_iterations <= 0:
            raise ValueError("max_iterations must be positive")
        self._catalog = catalog
        self._max_iterations = max_iterations

    def build_tableau(self, requirements: Sequence[Requirement]) -> Tableau:
        bundles = self._catalog.get_all()
        return Tableau(
            gather_constraints(requirements, bundles),
            gather_target_function(bundles),
            max_iterations=self._max_iterations,
        )

    def plan(self, requirements: Sequence[Requirement]) -> PurchasePlan:
        if not requirements:
            raise ValueError("no requirements provided")
        bundles = self._catalog.get_all()
        tableau = self.build_tableau(requirements)
        solution = tableau.solve()
        if solution.status != "feasible":
            raise PlanningError(
                f"tableau did not reach a feasible state: {solution.status} "
                f"after {solution.iterations} pivots"
            )
        return _make_plan(tableau, solution, bundles, requirements)


def _make_plan(
    tableau: Tableau,
    solution: TableauSolution,
    bundles: Sequence[Bundle],
    requirements: Sequence[Requirement],
) -> PurchasePlan:
    purchases = extract_assignment(tableau, [bundle.name for bundle in bundles])
    total_cost = sum((bundle.price * purchases[bundle.name] for bundle in bundles), Decimal(0))
    coverage = {
        req.name: sum(
            (bundle.quantity_of(req.name) * purchases[bundle.name] for bundle in bundles),
            Decimal(0),
        )
        for req in requirements
    }
    short = [
        req.name for req in requirements if coverage[req.name] < req.quantity - COVERAGE_TOL
    ]
    if short:
        raise PlanningError(f"extracted plan does not cover: {', '.join(short)}")
    if abs(total_cost - tableau.target.rhs) > COVERAGE_TOL:
        raise PlanningError(
            f"plan cost {total_cost} disagrees with tableau objective {tableau.target.rhs}"
        )
    return PurchasePlan(
        status=solution.status,
        purchases=purchases,
        total_cost=total_cost,
        objective=tableau.target.rhs,
        coverage=coverage,
        iterations=solution.iterations,
        pivots=list(solution.pivots),
    )
