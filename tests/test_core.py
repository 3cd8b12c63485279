import json
from decimal import Decimal
from pathlib import Path

import numpy as np
import pytest

import catalog as catalog_module
import cli
from catalog import Bundle, BundleContent, CatalogError, CatalogRepository, ContentType, default_catalog
from config import load_config
from planner import PlanningError, PurchasePlanner, extract_assignment
from requirements import Requirement, gather_constraints, gather_target_function
from solver.lp_solver import LPSolverError, solve_shopping
from tableau import Tableau
from telemetry.writer import read_history, write_history

XWING_REQUIREMENTS = [
    Requirement("X-Wing", 5),
    Requirement("LukeSkywalker", 1),
    Requirement("WedgeAntilles", 1),
    Requirement("RedSquadronExpert", 3),
    Requirement("IonTorpedo", 3),
]

CATALOG_PAYLOAD = [
    {
        "name": "CoreBox",
        "price": 39,
        "contents": [
            {"name": "X-Wing", "type": "ship", "count": 1},
            {"name": "LukeSkywalker", "type": "pilot", "count": 1},
            {"name": "RedSquadronExpert", "type": "pilot", "count": 2},
            {"name": "IonTorpedo", "type": "upgrade", "count": 2},
        ],
    },
    {
        "name": "Xwing",
        "price": 12,
        "contents": [
            {"name": "X-Wing", "type": "ship", "count": 1},
            {"name": "WedgeAntilles", "type": "pilot", "count": 1},
            {"name": "RedSquadronExpert", "type": "pilot", "count": 1},
            {"name": "IonTorpedo", "type": "upgrade", "count": 1},
        ],
    },
]


def test_gather_constraints_adds_negated_rows_and_helpers():
    bundles = default_catalog()
    constraints = gather_constraints(XWING_REQUIREMENTS, bundles)
    assert len(constraints) == 5
    assert list(constraints[0].values) == [
        "CoreBox",
        "Xwing",
        "helper0",
        "helper1",
        "helper2",
        "helper3",
        "helper4",
    ]
    assert constraints[3].rhs == -3
    assert constraints[3].values["CoreBox"] == -2
    assert constraints[3].values["helper3"] == 1
    assert constraints[3].values["helper0"] == 0

    target = gather_target_function(bundles)
    assert target.values == {"CoreBox": Decimal(-39), "Xwing": Decimal(-12)}
    assert target.rhs == 0


def test_gather_constraints_rejects_helper_name_clash():
    bundles = [Bundle("helper0", Decimal(1), (BundleContent("a", ContentType.SHIP, 1),))]
    with pytest.raises(ValueError):
        gather_constraints([Requirement("a", 1)], bundles)


def test_planner_buys_one_core_box_and_four_xwings():
    planner = PurchasePlanner(CatalogRepository())
    plan = planner.plan(XWING_REQUIREMENTS)
    assert plan.status == "feasible"
    assert plan.purchases == {"CoreBox": 1, "Xwing": 4}
    assert plan.total_cost == 87
    assert plan.objective == 87
    assert plan.is_integral
    assert plan.coverage["X-Wing"] == 5
    assert plan.coverage["RedSquadronExpert"] == 6


def test_planner_prefers_cheaper_of_identical_bundles():
    bundles = [
        Bundle("Pricey", Decimal(43), (BundleContent("X-Wing", ContentType.SHIP, 1),)),
        Bundle("Cheap", Decimal(38), (BundleContent("X-Wing", ContentType.SHIP, 1),)),
    ]
    plan = PurchasePlanner(CatalogRepository(bundles=bundles)).plan([Requirement("X-Wing", 4)])
    assert plan.purchases == {"Pricey": 0, "Cheap": 4}
    assert plan.total_cost == 152
    assert plan.total_cost == plan.objective
    reference = solve_shopping([Requirement("X-Wing", 4)], bundles)
    assert reference.objective == pytest.approx(152.0)


def test_planner_matches_reference_solver():
    bundles = default_catalog()
    plan = PurchasePlanner(CatalogRepository(bundles=bundles)).plan(XWING_REQUIREMENTS)
    reference = solve_shopping(XWING_REQUIREMENTS, bundles)
    assert reference.objective == pytest.approx(float(plan.total_cost), rel=1e-9)
    np.testing.assert_allclose(reference.x, [1.0, 4.0], atol=1e-6)


def test_planner_reports_unreachable_item():
    planner = PurchasePlanner(CatalogRepository())
    with pytest.raises(PlanningError):
        planner.plan([Requirement("TIE-Fighter", 1)])
    with pytest.raises(LPSolverError):
        solve_shopping([Requirement("TIE-Fighter", 1)], default_catalog())


def test_extract_assignment_reads_basic_columns():
    bundles = default_catalog()
    tableau = Tableau(
        gather_constraints(XWING_REQUIREMENTS, bundles),
        gather_target_function(bundles),
    )
    tableau.solve()
    assignment = extract_assignment(tableau)
    assert assignment["CoreBox"] == 1
    assert assignment["Xwing"] == 4
    assert assignment["helper0"] == 0
    assert assignment["helper2"] == 3


def test_catalog_refresh_rereads_file(tmp_path):
    path = tmp_path / "expansions.json"
    path.write_text(json.dumps(CATALOG_PAYLOAD))
    repo = CatalogRepository(path)
    assert not repo.loaded
    assert repo.get("CoreBox").price == 39
    assert repo.loaded

    payload = json.loads(json.dumps(CATALOG_PAYLOAD))
    payload[0]["price"] = 35
    path.write_text(json.dumps(payload))
    assert repo.get("CoreBox").price == 39
    repo.refresh()
    assert repo.get("CoreBox").price == 35


def test_catalog_loads_yaml_and_rejects_malformed(tmp_path):
    yaml_path = tmp_path / "catalog.yaml"
    yaml_path.write_text(
        "bundles:\n"
        "  - name: Solo\n"
        "    price: 4.5\n"
        "    contents:\n"
        "      - {name: IonTorpedo, type: upgrade, count: 1}\n"
    )
    bundles = CatalogRepository(yaml_path).get_all()
    assert bundles[0].price == Decimal("4.5")
    assert bundles[0].quantity_of("IonTorpedo") == 1

    bad = tmp_path / "bad.json"
    bad.write_text(json.dumps([{"name": "NoPrice", "contents": []}]))
    with pytest.raises(CatalogError):
        CatalogRepository(bad).load()

    nan_price = tmp_path / "nan.json"
    nan_price.write_text('[{"name": "A", "price": NaN, "contents": []}]')
    with pytest.raises(CatalogError):
        CatalogRepository(nan_price).load()

    negative = tmp_path / "negative.json"
    negative.write_text(json.dumps([{"name": "A", "price": -1, "contents": []}]))
    with pytest.raises(CatalogError):
        CatalogRepository(negative).load()

    fractional = tmp_path / "fractional.json"
    fractional.write_text(
        json.dumps([{"name": "A", "price": 5, "contents": [{"name": "X-Wing", "count": 1.5}]}])
    )
    with pytest.raises(CatalogError):
        CatalogRepository(fractional).load()
    with pytest.raises(FileNotFoundError):
        CatalogRepository(tmp_path / "missing.json").load()


def test_load_config_resolves_catalog_relative_to_file(tmp_path):
    (tmp_path / "data").mkdir()
    (tmp_path / "data" / "expansions.json").write_text(json.dumps(CATALOG_PAYLOAD))
    cfg_path = tmp_path / "run.yaml"
    cfg_path.write_text(
        "catalog: {path: data/expansions.json}\n"
        "requirements: {X-Wing: 2, IonTorpedo: 3}\n"
        "solver: {max_iterations: 50}\n"
    )
    cfg = load_config(cfg_path)
    assert cfg.catalog.path == (tmp_path / "data" / "expansions.json").resolve()
    assert cfg.requirements == [Requirement("X-Wing", 2), Requirement("IonTorpedo", 3)]
    assert cfg.solver.max_iterations == 50
    assert cfg.run.logging is True


def test_write_history_serializes_decimals(tmp_path):
    target = tmp_path / "out" / "trace.jsonl"
    write_history(target, [{"rhs": Decimal("1.5"), "x": np.array([1.0, 2.0])}])
    assert read_history(target) == [{"rhs": "1.5", "x": [1.0, 2.0]}]


def test_cli_writes_trace_and_prints_plan(tmp_path, capsys, monkeypatch):
    reads = []
    read_catalog_file = catalog_module._read_catalog_file

    def counting_read(path):
        reads.append(path)
        return read_catalog_file(path)

    monkeypatch.setattr(catalog_module, "_read_catalog_file", counting_read)
    (tmp_path / "expansions.json").write_text(json.dumps(CATALOG_PAYLOAD))
    cfg_path = tmp_path / "run.yaml"
    cfg_path.write_text(
        "catalog: {path: expansions.json}\n"
        "requirements:\n"
        "  - {name: X-Wing, quantity: 5}\n"
        "  - {name: LukeSkywalker, quantity: 1}\n"
        "  - {name: WedgeAntilles, quantity: 1}\n"
        "  - {name: RedSquadronExpert, quantity: 3}\n"
        "  - {name: IonTorpedo, quantity: 3}\n"
        "run: {logging: true, plots: true, cross_check: true}\n"
    )
    out_dir = tmp_path / "out"
    cli.main(["--config", str(cfg_path), "--out", str(out_dir)])

    printed = capsys.readouterr().out
    assert "buy CoreBox x 1" in printed
    assert "buy Xwing x 4" in printed
    assert "total cost: 87" in printed
    assert "agrees" in printed
    assert "integral optimum (HiGHS): 87" in printed
    assert len(reads) == 1

    trace = read_history(out_dir / "trace.jsonl")
    assert [record["column_name"] for record in trace] == ["Xwing", "CoreBox"]
    assert trace[-1]["target_rhs"] == "87"
    assert (out_dir / "plots" / "min_rhs.png").exists()


def test_cli_exits_when_plan_is_infeasible(tmp_path):
    cfg_path = tmp_path / "run.yaml"
    cfg_path.write_text("requirements: [{name: TIE-Fighter, quantity: 2}]\n")
    with pytest.raises(SystemExit):
        cli.main(["--config", str(cfg_path), "--out", str(tmp_path / "out")])
