"""Configuration loading for the bundle shopping runner."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, List, Optional

import yaml

from requirements import Requirement


@dataclass
class CatalogConfig:
    path: Optional[Path] = None


@dataclass
class SolverConfig:
    max_iterations: int = 10_000


@dataclass
class RunConfig:
    logging: bool = True
    plots: bool = False
    cross_check: bool = False


@dataclass
class Config:
    catalog: CatalogConfig
    requirements: List[Requirement]
    solver: SolverConfig = field(default_factory=SolverConfig)
    run: RunConfig = field(default_factory=RunConfig)
    base_path: Path = Path(".")


def _parse_requirements(raw: Any) -> List[Requirement]:
    if isinstance(raw, dict):
        # shorthand: {item: quantity}
        raw = [{"name": name, "quantity": qty} for name, qty in raw.items()]
    if not isinstance(raw, list) or not raw:
        raise ValueError("requirements must be a non-empty list")
    requirements = []
    for idx, item in enumerate(raw):
        if not isinstance(item, dict) or "name" not in item or "quantity" not in item:
            raise ValueError(f"requirement {idx} needs 'name' and 'quantity'")
        requirements.append(Requirement(name=str(item["name"]), quantity=int(item["quantity"])))
    return requirements


def load_config(path: str | Path) -> Config:
    cfg_path = Path(path).expanduser().resolve()
    with cfg_path.open("r", encoding="utf-8") as handle:
        raw = yaml.safe_load(handle) or {}

    base = cfg_path.parent

    catalog_raw = raw.get("catalog") or {}
    solver_raw = raw.get("solver") or {}
    run_raw = raw.get("run") or {}

    catalog_path = catalog_raw.get("path")
    catalog = CatalogConfig(
        path=(base / catalog_path).resolve() if catalog_path else None,
    )

    solver = SolverConfig(
        max_iterations=int(solver_raw.get("max_iterations", 10_000)),
    )
    if solver.max_iterations <= 0:
        raise ValueError("solver.max_iterations must be positive")

    run = RunConfig(
        logging=bool(run_raw.get("logging", True)),
        plots=bool(run_raw.get("plots", False)),
        cross_check=bool(run_raw.get("cross_check", False)),
    )

    return Config(
        catalog=catalog,
        requirements=_parse_requirements(raw.get("requirements")),
        solver=solver,
        run=run,
        base_path=base,
    )
