from __future__ import annotations

from dataclasses import dataclass, field

from .models import DtfSize, LineItem, ProductionMethod, StitchCountTier
from .pricing import calculate_price, is_plus_size

SIZE_OPTIONS = ("XXS", "XS", "S", "M", "L", "XL", "2XL", "3XL", "4XL", "OS")


@dataclass
class SkuConfig:
    """One garment SKU with its decoration settings and a colour x size quantity grid."""

    item_number: str
    name: str
    cost: float
    decoration_type: ProductionMethod = ProductionMethod.SCREEN_PRINT
    decoration_placements: int = 1
    decoration_description: str | None = None
    screen_print_colors: int | None = 1
    stitch_count_tier: StitchCountTier | None = StitchCountTier.UNDER_8K
    dtf_size: DtfSize | None = DtfSize.STANDARD
    quantities: dict[str, dict[str, int]] = field(default_factory=dict)

    def unit_price(self, size: str) -> float:
        return calculate_price(
            self.cost,
            self.decoration_type,
            placements=self.decoration_placements,
            is_plus_size=is_plus_size(size),
            screen_print_colors=self.screen_print_colors,
            stitch_count_tier=self.stitch_count_tier,
            dtf_size=self.dtf_size,
        )

    def iter_cells(self):
        for color, by_size in self.quantities.items():
            if not color.strip():
                continue
            for size in SIZE_OPTIONS:
                qty = by_size.get(size, 0)
                if qty > 0:
                    yield color, size, qty


@dataclass(frozen=True)
class SkuPreview:
    total_qty: int
    total_price: float


def build_line_item(
    *,
    item_number: str,
    name: str,
    color: str,
    size: str,
    qty: int,
    decoration_type: ProductionMethod | str,
    cost: float,
    decoration_placements: int = 1,
    decoration_description: str | None = None,
    screen_print_colors: int | None = None,
    stitch_count_tier: StitchCountTier | str | None = None,
    dtf_size: DtfSize | str | None = None,
) -> LineItem:
    plus = is_plus_size(size)
    price = calculate_price(
        cost,
        decoration_type,
        placements=decoration_placements,
        is_plus_size=plus,
        screen_print_colors=screen_print_colors,
        stitch_count_tier=stitch_count_tier,
        dtf_size=dtf_size,
    )
    return LineItem(
        item_number=item_number,
        name=name,
        color=color,
        size=size,
        qty=qty,
        decoration_type=ProductionMethod(decoration_type),
        decoration_placements=decoration_placements,
        decoration_description=decoration_description or None,
        screen_print_colors=screen_print_colors,
        stitch_count_tier=stitch_count_tier,
        dtf_size=dtf_size,
        is_plus_size=plus,
        cost=cost,
        price=price,
    )


def line_items_from_sku(config: SkuConfig) -> list[LineItem]:
    """Expand a SKU grid into one line item per non-empty colour/size cell."""
    return [
        build_line_item(
            item_number=config.item_number,
            name=config.name or "Untitled Item",
            color=color,
            size=size,
            qty=qty,
            decoration_type=config.decoration_type,
            cost=config.cost,
            decoration_placements=config.decoration_placements,
            decoration_description=config.decoration_description,
            screen_print_colors=config.screen_print_colors,
            stitch_count_tier=config.stitch_count_tier,
            dtf_size=config.dtf_size,
        )
        for color, size, qty in config.iter_cells()
    ]


def preview_line_items(config: SkuConfig) -> SkuPreview:
    total_qty = 0
    total_price = 0.0
    for _color, size, qty in config.iter_cells():
        total_qty += qty
        total_price += config.unit_price(size) * qty
    return SkuPreview(total_qty=total_qty, total_price=round(total_price, 2))
