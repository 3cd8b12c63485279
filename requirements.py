"""Turn item requirements and bundle prices into tableau constraints."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Sequence

from catalog import Bundle
from tableau import Constraint

HELPER_PREFIX = "helper"


@dataclass(frozen=True)
class Requirement:
    """At least ``quantity`` copies of item ``name``."""

    name: str
    quantity: int

    def __post_init__(self) -> None:
        if self.quantity < 0:
            raise ValueError(f"requirement for {self.name} must be non-negative")


def helper_name(index: int) -> str:
    return f"{HELPER_PREFIX}{index}"


def gather_constraints(
    requirements: Sequence[Requirement], bundles: Sequence[Bundle]
) -> List[Constraint]:
    """Build one <=-form row per requirement.

    ``sum(count * bundle) >= quantity`` is negated to
    ``sum(-count * bundle) <= -quantity`` and every row receives the full set
    of helper columns, 1 on its own row and 0 elsewhere.
    """
    if not bundles:
        raise ValueError("catalog has no bundles")
    names = [bundle.name for bundle in bundles]
    helpers = [helper_name(i) for i in range(len(requirements))]
    clash = sorted(set(names) & set(helpers))
    if clash:
        raise ValueError(f"bundle names collide with helper columns: {clash}")
    seen: set[str] = set()
    for requirement in requirements:
        if requirement.name in seen:
            raise ValueError(f"duplicate requirement: {requirement.name}")
        seen.add(requirement.name)

    constraints: List[Constraint] = []
    for requirement in requirements:
        constraint = Constraint(rhs=-requirement.quantity)
        for bundle in bundles:
            constraint.add(bundle.name, -bundle.quantity_of(requirement.name))
        constraints.append(constraint)

    for i, constraint in enumerate(constraints):
        for y, helper in enumerate(helpers):
            constraint.add(helper, 1 if i == y else 0)
    return constraints


def gather_target_function(bundles: Sequence[Bundle]) -> Constraint:
    target = Constraint(rhs=0)
    for bundle in bundles:
        target.add(bundle.name, -bundle.price)
    return target
