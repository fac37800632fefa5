"""Order amount computation, done once at checkout."""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Union

from bazaar.config import Settings, settings as default_settings

CENT = Decimal("0.01")


def to_money(value: Union[Decimal, float, int, str]) -> Decimal:
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class OrderFees:
    product_amount: Decimal
    shipping_fee: Decimal
    platform_fee: Decimal
    total_amount: Decimal


def compute_fees(
    product_amount: Union[Decimal, float, int, str],
    order_type: str,
    payment_method: str,
    config: Settings = default_settings,
) -> OrderFees:
    """
    Flat shipping fee for shipped orders, percentage platform fee for online
    payments; the total is the sum of the three.
    """
    amount = to_money(product_amount)
    shipping_fee = to_money(config.shipping_flat_fee) if order_type == "shipping" else to_money(0)
    if payment_method == "online":
        platform_fee = to_money(amount * Decimal(str(config.platform_fee_rate)))
    else:
        platform_fee = to_money(0)

    return OrderFees(
        product_amount=amount,
        shipping_fee=shipping_fee,
        platform_fee=platform_fee,
        total_amount=amount + shipping_fee + platform_fee,
    )
