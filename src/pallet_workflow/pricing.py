"""Unit pricing for decorated line items.

Every price shown to a user, whether a preview of an uncommitted size grid
or the committed ``LineItem.price``, goes through :func:`calculate_price`.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from .models import PLUS_SIZES, DtfSize, ProductionMethod, StitchCountTier

BASE_MULTIPLIER = 2.0
SCREEN_PRINT_COLOR_FEE = 1.00
SCREEN_PRINT_PLACEMENT_FEE = 2.00
PLUS_SIZE_SURCHARGE = 2.00
DTF_FEES: dict[DtfSize, float] = {DtfSize.STANDARD: 5.00, DtfSize.LARGE: 8.00}
STITCH_TIER_FEES: dict[StitchCountTier, float] = {
    StitchCountTier.UNDER_8K: 0.00,
    StitchCountTier.FROM_8K_TO_12K: 10.00,
    StitchCountTier.OVER_12K: 20.00,
}


def is_plus_size(size: str) -> bool:
    return size.strip().upper() in PLUS_SIZES


@dataclass(frozen=True)
class PriceFee:
    label: str
    amount: float


@dataclass(frozen=True)
class PriceBreakdown:
    base: float
    fees: list[PriceFee] = field(default_factory=list)

    @property
    def total(self) -> float:
        return round(self.base + sum(fee.amount for fee in self.fees), 2)


def price_breakdown(
    unit_cost: float,
    decoration_type: ProductionMethod | str,
    placements: int = 1,
    is_plus_size: bool = False,
    screen_print_colors: int | None = None,
    stitch_count_tier: StitchCountTier | str | None = None,
    dtf_size: DtfSize | str | None = None,
) -> PriceBreakdown:
    """Return the labelled fee breakdown for one unit.

    Unset method modifiers fall back to one ink colour, the ``<8k`` stitch
    tier and a ``Standard`` transfer.

    Raises:
        ValueError: On a negative cost, placement count or colour count, or
            an unknown decoration type, stitch tier or transfer size.
    """
    if unit_cost < 0:
        raise ValueError(f"unit_cost must be >= 0, got: {unit_cost}")
    if placements < 0:
        raise ValueError(f"placements must be >= 0, got: {placements}")
    method = ProductionMethod(decoration_type)

    fees: list[PriceFee] = []
    if method is ProductionMethod.SCREEN_PRINT:
        colors = 1 if screen_print_colors is None else screen_print_colors
        if colors < 0:
            raise ValueError(f"screen_print_colors must be >= 0, got: {colors}")
        if colors:
            fees.append(PriceFee(f"{colors} Color(s)", SCREEN_PRINT_COLOR_FEE * colors))
        if placements:
            fees.append(PriceFee(f"{placements} Placement(s)", SCREEN_PRINT_PLACEMENT_FEE * placements))
    elif method is ProductionMethod.DTF:
        size = DtfSize(dtf_size) if dtf_size is not None else DtfSize.STANDARD
        fees.append(PriceFee(f"{size.value} Transfer", DTF_FEES[size]))
    elif method is ProductionMethod.EMBROIDERY:
        tier = StitchCountTier(stitch_count_tier) if stitch_count_tier is not None else StitchCountTier.UNDER_8K
        if STITCH_TIER_FEES[tier]:
            fees.append(PriceFee(f"{tier.value} Stitches", STITCH_TIER_FEES[tier]))

    if is_plus_size:
        fees.append(PriceFee("2XL+ Surcharge", PLUS_SIZE_SURCHARGE))

    return PriceBreakdown(base=round(unit_cost * BASE_MULTIPLIER, 2), fees=fees)


def calculate_price(
    unit_cost: float,
    decoration_type: ProductionMethod | str,
    placements: int = 1,
    is_plus_size: bool = False,
    screen_print_colors: int | None = None,
    stitch_count_tier: StitchCountTier | str | None = None,
    dtf_size: DtfSize | str | None = None,
) -> float:
    """Selling unit price: ``cost * 2`` plus method fees plus the plus-size surcharge."""
    return price_breakdown(
        unit_cost,
        decoration_type,
        placements=placements,
        is_plus_size=is_plus_size,
        screen_print_colors=screen_print_colors,
        stitch_count_tier=stitch_count_tier,
        dtf_size=dtf_size,
    ).total
