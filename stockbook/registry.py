from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any

from .exceptions import InvalidCollectionError


class Shape(enum.Enum):
    records = "records"
    single = "single"
    mapping = "mapping"


@dataclass(frozen=True)
class CollectionSpec:
    name: str
    key: str
    shape: Shape = Shape.records
    stamp_on_add: bool = False

    @property
    def filename(self) -> str:
        return f"{self.name}.json"

    def empty_document(self) -> dict[str, Any]:
        if self.shape is Shape.records:
            body: Any = []
        else:
            body = {}
        return {self.key: body}


COLLECTIONS: dict[str, CollectionSpec] = {
    spec.name: spec
    for spec in (
        CollectionSpec("items", "items"),
        CollectionSpec("customers", "customers"),
        CollectionSpec("categories", "categories"),
        CollectionSpec("bills", "bills"),
        CollectionSpec("quotations", "quotations"),
        CollectionSpec("users", "users"),
        CollectionSpec("company", "company", shape=Shape.single),
        CollectionSpec("stock-movements", "movements", stamp_on_add=True),
        CollectionSpec("route-permissions", "permissions", shape=Shape.mapping),
    )
}

# Counters written when bootstrapping a data directory from scratch.
BOOTSTRAP_COUNTERS: dict[str, dict[str, int]] = {
    "bills": {"nextBillNumber": 1, "nextGSTBillNumber": 1, "nextNormalBillNumber": 1},
    "quotations": {"nextQuotationNumber": 1, "nextGSTQuotationNumber": 1, "nextNormalQuotationNumber": 1},
}


def get_spec(name: str) -> CollectionSpec:
    try:
        return COLLECTIONS[name]
    except (KeyError, TypeError):
        raise InvalidCollectionError(name) from None
