#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
永续合约持仓
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

ZERO = Decimal(0)


@dataclass
class SwapPosition:
    """
    单个永续交易对的逐仓持仓，由资产管理器持有

    保证金从计价币余额转入持仓，平仓时连同盈亏退回计价币。
    持仓价值 = margin + quantity * (mark - entry_price)，计入总权益。

    字段说明：
        pair:          交易对
        quote:         保证金币种(计价币)
        quantity:      合约数量，正数为多头、负数为空头
        entry_price:   开仓均价
        margin:        占用保证金
        realized_pnl:  累计已实现盈亏(不含手续费和资金费)
    """
    pair: str
    quote: str
    quantity: Decimal = ZERO
    entry_price: Decimal = ZERO
    margin: Decimal = ZERO
    realized_pnl: Decimal = ZERO

    @property
    def is_flat(self) -> bool:
        return self.quantity == 0

    def unrealized_pnl(self, mark_price: Optional[Decimal]) -> Decimal:
        if self.quantity == 0 or mark_price is None:
            return ZERO
        return self.quantity * (mark_price - self.entry_price)

    def value(self, mark_price: Optional[Decimal]) -> Decimal:
        return self.margin + self.unrealized_pnl(mark_price)

    @property
    def liquidation_price(self) -> Optional[Decimal]:
        """保证金亏完时的价格，空仓为 None"""
        if self.quantity == 0:
            return None
        return self.entry_price - self.margin / self.quantity
