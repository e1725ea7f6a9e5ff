from dataclasses import dataclass
from typing import FrozenSet, Iterable, Optional

from promo_pricing.enums.promotion import AppliesTo


@dataclass(frozen=True)
class LineItem:
    """One cart/order row as seen by the promotion engine."""
    variant_id: int
    quantity: int
    subtotal: float
    unit_measure: float = 0.0
    category_id: Optional[int] = None
    discount_applied: float = 0.0


@dataclass(frozen=True)
class PromotionScope:
    applies_to: str
    variant_ids: FrozenSet[int] = frozenset()
    category_ids: FrozenSet[int] = frozenset()

    @classmethod
    def from_promotion(cls, promotion) -> "PromotionScope":
        applies_to = promotion.applies_to or AppliesTo.all.value
        variant_ids: FrozenSet[int] = frozenset()
        category_ids: FrozenSet[int] = frozenset()
        # join rows are only consulted for the matching scope
        if applies_to == AppliesTo.specific_products.value:
            variant_ids = frozenset(p.variant_id for p in promotion.products)
        elif applies_to == AppliesTo.specific_categories.value:
            category_ids = frozenset(c.category_id for c in promotion.categories)
        return cls(applies_to=applies_to, variant_ids=variant_ids, category_ids=category_ids)

    def covers(self, line: LineItem) -> bool:
        if self.applies_to == AppliesTo.all.value:
            return True
        if self.applies_to == AppliesTo.specific_products.value:
            return line.variant_id in self.variant_ids
        if self.applies_to == AppliesTo.specific_categories.value:
            return line.category_id is not None and line.category_id in self.category_ids
        return False

    def in_scope(self, line_items: Iterable[LineItem]):
        return [line for line in line_items if self.covers(line)]
