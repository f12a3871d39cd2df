"""Cost basis lookup for products and combos.

A product's unit cost is its own stored cost when it has one, otherwise the
unit cost on the first purchase line that bought it. A combo costs the sum of
its components' unit costs times the component quantities.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

from profitloss.normalization.fields import first_present, ref_id, to_decimal

PRODUCT_COST_KEYS = ("costPrice", "purchasePrice", "unitCost", "cost")


@dataclass
class CostResolution:
    """Outcome of one cost lookup.

    ``missing`` lists unresolved references; ``cost`` is None when a cost was
    found but could not be read as a number.
    """

    cost: Decimal | None
    label: str | None = None
    missing: list[str] = field(default_factory=list)

    @property
    def resolved(self) -> bool:
        return not self.missing


class CostBook:
    """In-memory index of products, purchases and combos."""

    def __init__(
        self,
        products: Iterable[Mapping[str, Any]] = (),
        purchases: Iterable[Mapping[str, Any]] = (),
        combos: Iterable[Mapping[str, Any]] = (),
    ):
        self.products: dict[str, Mapping[str, Any]] = {}
        self.purchase_costs: dict[str, Decimal] = {}
        self.combos: dict[str, Mapping[str, Any]] = {}

        for product in products:
            product_id = ref_id(product)
            if product_id:
                self.products[product_id] = product
        for purchase in purchases:
            for item in purchase.get("items") or []:
                product_id = ref_id(item.get("product"))
                cost = to_decimal(item.get("unitCost"))
                if product_id and cost is not None:
                    self.purchase_costs.setdefault(product_id, cost)
        for combo in combos:
            combo_id = ref_id(combo)
            if combo_id:
                self.combos[combo_id] = combo

    def product_cost(self, reference: Any) -> CostResolution:
        """Resolve a product reference (id or embedded document).

        A stored cost that is present but not a finite number resolves to
        ``None``, so the record's profit is zeroed and flagged as non-numeric.
        """
        product_id = ref_id(reference)
        if product_id is None:
            return CostResolution(cost=Decimal("0"), missing=["product:<none>"])

        product = self.products.get(product_id)
        label = None
        if product is not None:
            label = product.get("name")
            stored = first_present(product, *PRODUCT_COST_KEYS)
            if stored is not None:
                return CostResolution(cost=to_decimal(stored), label=label)
        if isinstance(reference, Mapping):
            label = label or reference.get("name")
            embedded = first_present(reference, *PRODUCT_COST_KEYS)
            if embedded is not None:
                return CostResolution(cost=to_decimal(embedded), label=label)

        purchase_cost = self.purchase_costs.get(product_id)
        if purchase_cost is not None:
            return CostResolution(cost=purchase_cost, label=label)
        return CostResolution(cost=Decimal("0"), label=label, missing=[f"product:{product_id}"])

    def combo_cost(self, reference: Any) -> CostResolution:
        """Resolve a combo reference by summing its component costs.

        Any component with an unreadable cost makes the whole combo cost ``None``.
        """
        combo_id = ref_id(reference)
        combo = self.combos.get(combo_id) if combo_id else None
        if combo is None and isinstance(reference, Mapping) and reference.get("products"):
            combo = reference
        if combo is None:
            return CostResolution(cost=Decimal("0"), missing=[f"combo:{combo_id or '<none>'}"])

        components = combo.get("products") or []
        if not components:
            return CostResolution(
                cost=Decimal("0"),
                label=combo.get("name"),
                missing=[f"combo:{combo_id}:components"],
            )

        total: Decimal | None = Decimal("0")
        missing: list[str] = []
        for component in components:
            quantity = to_decimal(component.get("quantity")) or Decimal("1")
            part = self.product_cost(component.get("product"))
            if part.cost is None or total is None:
                total = None
            else:
                total += part.cost * quantity
            missing.extend(part.missing)
        return CostResolution(cost=total, label=combo.get("name"), missing=missing)
