"""
Position bookkeeping from broker fills.

Fills are netted against the open position for (account, symbol):
- Same side: quantity added, entry price re-averaged by quantity
- Opposite side: quantity reduced and P&L realized; at zero the position
  closes, and any excess quantity opens a position on the other side
"""

from dataclasses import dataclass

from tradegate_engine.domain import OrderRecord, PositionRecord, PositionSide


@dataclass
class PositionUpdate:
    """Result of netting one fill into the ledger."""

    position: PositionRecord | None  # None when the fill closed the position
    realized_pnl: float = 0.0

    @property
    def closed(self) -> bool:
        return self.position is None


def _open_position(order: OrderRecord, quantity: int, realized_pnl: float = 0.0) -> PositionRecord:
    position = PositionRecord(
        account_id=order.account_id,
        strategy_id=order.strategy_id,
        symbol=order.symbol,
        exchange=order.exchange,
        side=PositionSide.from_order_side(order.side),
        quantity=quantity,
        avg_entry_price=order.avg_price,
        realized_pnl=realized_pnl,
        entry_order_id=order.order_id,
    )
    position.mark(order.avg_price)
    return position


def apply_fill(existing: PositionRecord | None, order: OrderRecord) -> PositionUpdate:
    """
    Net an executed order into the open position for its symbol.

    Args:
        existing: Open position for (account, symbol), if any
        order: Executed order (filled_qty and avg_price set)

    Returns:
        PositionUpdate with the position to store, or None to remove it
    """
    fill_qty = order.filled_qty
    fill_price = order.avg_price

    if existing is None:
        return PositionUpdate(position=_open_position(order, fill_qty))

    position = existing.model_copy(deep=True)
    fill_side = PositionSide.from_order_side(order.side)

    if position.side == fill_side:
        total_qty = position.quantity + fill_qty
        position.avg_entry_price = (
            position.avg_entry_price * position.quantity + fill_price * fill_qty
        ) / total_qty
        position.quantity = total_qty
        position.mark(fill_price)
        return PositionUpdate(position=position)

    closing_qty = min(position.quantity, fill_qty)
    multiplier = 1 if position.side == PositionSide.LONG else -1
    realized = multiplier * (fill_price - position.avg_entry_price) * closing_qty

    remaining = position.quantity - closing_qty
    if remaining > 0:
        position.quantity = remaining
        position.realized_pnl += realized
        position.mark(fill_price)
        return PositionUpdate(position=position, realized_pnl=realized)

    excess = fill_qty - closing_qty
    if excess == 0:
        return PositionUpdate(position=None, realized_pnl=realized)

    flipped = _open_position(order, excess, realized_pnl=position.realized_pnl + realized)
    return PositionUpdate(position=flipped, realized_pnl=realized)
