"""Plotting utilities for the pivot trace of a tableau solve."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable

import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt
import numpy as np

from tableau import PivotRecord


def generate_plots(pivots: Iterable[PivotRecord], out_dir: str | Path) -> list[Path]:
    records = list(pivots)
    if not records:
        return []
    out_path = Path(out_dir)
    out_path.mkdir(parents=True, exist_ok=True)

    it = np.array([rec.iteration for rec in records], dtype=float)
    min_rhs = np.array([float(rec.min_rhs) for rec in records], dtype=float)
    target_rhs = np.array([float(rec.target_rhs) for rec in records], dtype=float)

    written = []
    plt.figure(figsize=(6, 4))
    plt.plot(it, min_rhs, marker="o", label="most negative RHS")
    plt.axhline(0.0, color="grey", linewidth=0.8, linestyle=":")
    plt.xlabel("pivot")
    plt.ylabel("RHS")
    plt.legend()
    plt.tight_layout()
    written.append(out_path / "min_rhs.png")
    plt.savefig(written[-1])
    plt.close()

    plt.figure(figsize=(6, 4))
    plt.step(it, target_rhs, where="post", label="cost row RHS")
    plt.xlabel("pivot")
    plt.ylabel("cost")
    plt.legend()
    plt.tight_layout()
    written.append(out_path / "cost.png")
    plt.savefig(written[-1])
    plt.close()

    return written
