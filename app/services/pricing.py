"""Batch price resolution for an order's line items."""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Mapping

from app.core.errors import PartialBatchFailure, ServiceError
from app.services.products_client import ProductsClient

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


@dataclass
class ResolvedItem:
    index: int
    requested_product_id: int
    requested_kind: str
    id: int
    kind: str
    name: str
    price: float


class PricingResolver:
    """Prices every item of an order; either all of them resolve or none do."""

    def __init__(self, client: ProductsClient):
        self.client = client

    def resolve_batch(self, items: Iterable[Mapping[str, Any]]) -> List[ResolvedItem]:
        resolved: List[ResolvedItem] = []
        failures: List[Dict[str, Any]] = []

        for index, item in enumerate(items):
            product_id, kind = item["product_id"], item["kind"]
            try:
                product = self.client.fetch_price(product_id, kind)
            except ServiceError as e:
                failures.append({
                    "index": index,
                    "product_id": product_id,
                    "kind": kind,
                    "message": e.message,
                })
                continue

            resolved.append(ResolvedItem(
                index=index,
                requested_product_id=product_id,
                requested_kind=kind,
                id=product.id,
                kind=product.kind,
                name=product.name,
                price=product.price,
            ))

        if failures:
            logger.warning(
                "Batch pricing failed for %d of %d item(s)",
                len(failures), len(failures) + len(resolved),
            )
            raise PartialBatchFailure(failures)

        return resolved

    @staticmethod
    def total(resolved: Iterable[ResolvedItem]) -> Decimal:
        return sum((to_money(r.price) for r in resolved), Decimal("0")).quantize(CENT)


def to_money(value: float) -> Decimal:
    # via str() so 0.1 becomes Decimal("0.1"), not its binary expansion
    return Decimal(str(value)).quantize(CENT)
