"""
ComboPricingTable -- combo name to price lookup.

Built once from configuration and passed into the lifecycle, so prices are
an explicit input rather than a module-level dictionary.  Unknown combos are
rejected; there is no fallback price.
"""

from collections.abc import Mapping
from decimal import Decimal
from types import MappingProxyType

from lunch_kernel.exceptions import UnknownComboError


class ComboPricingTable:
    """Immutable mapping of combo name -> Decimal price."""

    __slots__ = ("_prices",)

    def __init__(self, prices: Mapping[str, Decimal | int | str]):
        if not prices:
            raise ValueError("ComboPricingTable requires at least one combo")
        normalized: dict[str, Decimal] = {}
        for name, price in prices.items():
            value = Decimal(str(price))
            if value <= 0:
                raise ValueError(f"Combo '{name}' must have a positive price, got {value}")
            normalized[name] = value
        self._prices = MappingProxyType(normalized)

    def price_of(self, combo_type: str) -> Decimal:
        try:
            return self._prices[combo_type]
        except KeyError:
            raise UnknownComboError(combo_type, sorted(self._prices)) from None

    def __contains__(self, combo_type: object) -> bool:
        return combo_type in self._prices

    @property
    def combos(self) -> tuple[str, ...]:
        return tuple(self._prices)

    def as_dict(self) -> dict[str, Decimal]:
        return dict(self._prices)

    def __repr__(self) -> str:
        items = ", ".join(f"{k}={v}" for k, v in self._prices.items())
        return f"ComboPricingTable({items})"
