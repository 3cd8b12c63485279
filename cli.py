"""Command-line interface for the bundle shopping planner."""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import Sequence

from catalog import Bundle, CatalogRepository
from config import Config, load_config
from planner import PlanningError, PurchasePlan, PurchasePlanner
from plots.trace import generate_plots
from solver.lp_solver import LPSolverError, solve_shopping
from telemetry.writer import write_history


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Minimum-cost bundle shopping planner")
    parser.add_argument(
        "--config",
        required=True,
        help="Path to YAML configuration file.",
    )
    parser.add_argument(
        "--out",
        required=True,
        help="Output directory for the pivot trace and plots.",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    cfg = load_config(args.config)
    out_dir = Path(args.out)

    catalog = CatalogRepository(cfg.catalog.path)
    try:
        plan = run(cfg, out_dir, catalog)
    except PlanningError as exc:
        raise SystemExit(f"planning failed: {exc}") from exc

    print(format_plan(plan))
    if cfg.run.cross_check:
        print(_cross_check(cfg, catalog.get_all(), plan))


def run(cfg: Config, out_dir: Path, catalog: CatalogRepository) -> PurchasePlan:
    planner = PurchasePlanner(catalog, max_iterations=cfg.solver.max_iterations)
    plan = planner.plan(cfg.requirements)

    if cfg.run.logging:
        write_history(out_dir / "trace.jsonl", (record.to_dict() for record in plan.pivots))
        write_history(out_dir / "plan.jsonl", [plan.to_dict()])
    if cfg.run.plots:
        generate_plots(plan.pivots, out_dir / "plots")
    return plan


def format_plan(plan: PurchasePlan) -> str:
    lines = [f"status: {plan.status} ({plan.iterations} pivots)"]
    for name, qty in plan.purchases.items():
        if qty != 0:
            lines.append(f"  buy {name} x {qty.normalize():f}")
    lines.append(f"total cost: {plan.total_cost.normalize():f}")
    if not plan.is_integral:
        lines.append("note: fractional bundle counts, round up before buying")
    return "\n".join(lines)


def _cross_check(cfg: Config, bundles: Sequence[Bundle], plan: PurchasePlan) -> str:
    try:
        reference = solve_shopping(cfg.requirements, bundles)
        integral = solve_shopping(cfg.requirements, bundles, integral=True)
    except LPSolverError as exc:
        return f"reference solver failed: {exc}"
    delta = abs(reference.objective - float(plan.total_cost))
    verdict = "agrees" if delta < 1e-6 else f"differs by {delta:.6g}"
    return (
        f"reference cost (HiGHS): {reference.objective:.6g}, {verdict}\n"
        f"integral optimum (HiGHS): {integral.objective:.6g}"
    )


if __name__ == "__main__":
    main()
