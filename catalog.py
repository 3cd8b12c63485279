"""Bundle catalog: purchasable bundles and the items they contain."""

from __future__ import annotations

import json
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from enum import Enum
from pathlib import Path
from typing import Any, Iterable, List, Optional

import yaml


class CatalogError(ValueError):
    """Raised when catalog data cannot be turned into bundles."""


class ContentType(str, Enum):
    SHIP = "ship"
    PILOT = "pilot"
    UPGRADE = "upgrade"


@dataclass(frozen=True)
class BundleContent:
    name: str
    type: ContentType
    count: int


@dataclass(frozen=True)
class Bundle:
    name: str
    price: Decimal
    contents: tuple[BundleContent, ...]

    def quantity_of(self, item: str) -> int:
        return sum(content.count for content in self.contents if content.name == item)


def default_catalog() -> List[Bundle]:
    return [
        Bundle(
            name="CoreBox",
            price=Decimal(39),
            contents=(
                BundleContent("X-Wing", ContentType.SHIP, 1),
                BundleContent("LukeSkywalker", ContentType.PILOT, 1),
                BundleContent("RedSquadronExpert", ContentType.PILOT, 2),
                BundleContent("IonTorpedo", ContentType.UPGRADE, 2),
            ),
        ),
        Bundle(
            name="Xwing",
            price=Decimal(12),
            contents=(
                BundleContent("X-Wing", ContentType.SHIP, 1),
                BundleContent("WedgeAntilles", ContentType.PILOT, 1),
                BundleContent("RedSquadronExpert", ContentType.PILOT, 1),
                BundleContent("IonTorpedo", ContentType.UPGRADE, 1),
            ),
        ),
    ]


def parse_bundles(raw: Any) -> List[Bundle]:
    if isinstance(raw, dict):
        raw = raw.get("bundles", raw.get("expansions"))
    if not isinstance(raw, list):
        raise CatalogError("catalog must be a list of bundles")

    bundles: List[Bundle] = []
    seen: set[str] = set()
    for idx, item in enumerate(raw):
        if not isinstance(item, dict):
            raise CatalogError(f"bundle {idx} must be a mapping")
        try:
            name = str(item["name"])
            price = Decimal(str(item["price"]))
            if not price.is_finite() or price < 0:
                raise ValueError(f"price must be a finite non-negative number, got {price}")
            contents = tuple(_parse_content(entry) for entry in item.get("contents") or [])
        except KeyError as exc:
            raise CatalogError(f"bundle {idx} is missing field {exc.args[0]!r}") from exc
        except (InvalidOperation, TypeError, ValueError) as exc:
            raise CatalogError(f"bundle {idx} is malformed: {exc}") from exc
        if name in seen:
            raise CatalogError(f"duplicate bundle name: {name}")
        seen.add(name)
        bundles.append(Bundle(name=name, price=price, contents=contents))
    return bundles


def _parse_content(entry: dict[str, Any]) -> BundleContent:
    raw_count = entry["count"]
    if isinstance(raw_count, bool):
        raise ValueError(f"count for {entry['name']} must be a whole number")
    count_value = Decimal(str(raw_count))
    if not count_value.is_finite() or count_value != count_value.to_integral_value():
        raise ValueError(f"count for {entry['name']} must be a whole number, got {raw_count}")
    count = int(count_value)
    if count < 0:
        raise ValueError(f"negative count for {entry['name']}")
    return BundleContent(
        name=str(entry["name"]),
        type=ContentType(str(entry.get("type", "upgrade")).lower()),
        count=count,
    )


def _read_catalog_file(path: Path) -> Any:
    if not path.exists():
        raise FileNotFoundError(path)
    text = path.read_text(encoding="utf-8")
    if path.suffix == ".json":
        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            raise CatalogError(f"invalid JSON in {path}: {exc}") from exc
    if path.suffix in {".yaml", ".yml"}:
        try:
            return yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise CatalogError(f"invalid YAML in {path}: {exc}") from exc
    raise CatalogError(f"unsupported catalog file type: {path}")


class CatalogRepository:
    """Caller-owned bundle store.

    Bundles are read lazily on first access and kept until ``refresh`` is
    called. Without a path or explicit bundles the built-in catalog is
    served.
    """

    def __init__(
        self,
        path: Optional[str | Path] = None,
        *,
        bundles: Optional[Iterable[Bundle]] = None,
    ) -> None:
        self._path = Path(path).expanduser() if path is not None else None
        self._static = list(bundles) if bundles is not None else None
        self._bundles: Optional[List[Bundle]] = None

    @property
    def loaded(self) -> bool:
        return self._bundles is not None

    def load(self) -> List[Bundle]:
        if self._path is not None:
            bundles = parse_bundles(_read_catalog_file(self._path))
        elif self._static is not None:
            bundles = list(self._static)
        else:
            bundles = default_catalog()
        self._bundles = bundles
        return list(bundles)

    def refresh(self) -> List[Bundle]:
        self._bundles = None
        return self.load()

    def get_all(self) -> List[Bundle]:
        if self._bundles is None:
            self.load()
        assert self._bundles is not None
        return list(self._bundles)

    def get(self, name: str) -> Bundle:
        for bundle in self.get_all():
            if bundle.name == name:
                return bundle
        raise KeyError(name)
