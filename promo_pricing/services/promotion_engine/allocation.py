from dataclasses import dataclass, replace
from typing import List, Sequence, Tuple

from promo_pricing.services.promotion_engine.line_items import LineItem, PromotionScope


@dataclass(frozen=True)
class AllocationResult:
    line_items: Tuple[LineItem, ...]
    total_discount: float


def is_variant_eligible(promotion, line: LineItem) -> bool:
    return PromotionScope.from_promotion(promotion).covers(line)


def apply_promotions(
    line_items: Sequence[LineItem],
    promotions: Sequence,
) -> AllocationResult:
    """
    Spread percentage discounts of the given promotions over the line items.

    Contributions of every promotion covering a line are summed first and the
    sum is then clamped to the line subtotal, so a line never goes below zero.
    The input line items are left untouched; new copies carrying
    `discount_applied` are returned.
    """
    scoped: List[Tuple[PromotionScope, float]] = [
        (PromotionScope.from_promotion(p), float(p.discount_value or 0.0))
        for p in promotions
    ]

    updated: List[LineItem] = []
    total_discount = 0.0

    for line in line_items:
        subtotal = float(line.subtotal or 0.0)
        accumulated = 0.0
        for scope, percentage in scoped:
            if scope.covers(line):
                accumulated += subtotal * (percentage / 100.0)

        # clamp after summing
        discount = max(0.0, min(accumulated, subtotal))
        updated.append(replace(line, discount_applied=discount))
        total_discount += discount

    return AllocationResult(line_items=tuple(updated), total_discount=total_discount)
