from datetime import datetime
from typing import Iterable

STOCK_IN_PREFIX = "RK"
STOCK_OUT_PREFIX = "CK"


def next_order_number(prefix: str, order_date: datetime, existing_orders: Iterable) -> str:
    """``<prefix><YYYYMMDD><NNN>`` where NNN follows the count of same-day orders.

    Display-oriented: the sequence is derived from the orders currently stored,
    skipping numbers that are already taken.
    """
    day = order_date.date()
    orders = list(existing_orders)
    taken = {o.order_number for o in orders}
    seq = sum(1 for o in orders if o.order_date.date() == day) + 1
    stamp = order_date.strftime("%Y%m%d")
    number = f"{prefix}{stamp}{seq:03d}"
    while number in taken:
        seq += 1
        number = f"{prefix}{stamp}{seq:03d}"
    return number
