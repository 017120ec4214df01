#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
交易对及其标记价格
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from multipair_core.errors import InvariantViolation
from multipair_core.utils import decimal_quantize

from .constants import OrderSide, TimeFrame, TradeInsType


def _fit(value: Decimal, places: int, rounding: int) -> Decimal:
    # 小数位数已在精度内的值原样返回，避免产生多余的尾零
    if value.as_tuple().exponent >= -places:
        return value
    return decimal_quantize(value, places, rounding)


@dataclass
class TradingPair:
    """
    交易对，标记价格只能通过 update_mark 按时间非递减更新

    字段说明：
        symbol:             交易对代码，如 "BTC-USDT"
        base:               基础币
        quote:              计价币
        ins_type:           现货/永续
        timeframe:          K线粒度
        funding:            是否结算资金费
        quantity_precision: 下单数量小数位数
        price_precision:    价格小数位数
        leverage:           永续合约开仓杠杆倍数，保证金 = 名义价值 / leverage
        mark_price:         最新标记价格
        mark_time:          标记价格时间（毫秒）
    """
    symbol: str
    base: str
    quote: str
    ins_type: TradeInsType = TradeInsType.SPOT
    timeframe: TimeFrame = TimeFrame.M1
    funding: bool = False
    quantity_precision: int = 8
    price_precision: int = 8
    leverage: Decimal = Decimal(1)
    mark_price: Optional[Decimal] = None
    mark_time: Optional[int] = None

    @property
    def is_swap(self) -> bool:
        return self.ins_type == TradeInsType.SWAP

    @property
    def amount_precision(self) -> int:
        """金额(数量 x 价格)的小数位数"""
        return self.quantity_precision + self.price_precision

    def quantize_quantity(self, quantity: Decimal) -> Decimal:
        """数量按精度向下截断"""
        return _fit(quantity, self.quantity_precision, 2)

    def quantize_price(self, price: Decimal, side: OrderSide) -> Decimal:
        """限价按精度取整，买单向下、卖单向上，不会比原价格更差"""
        return _fit(price, self.price_precision, 2 if side == OrderSide.BUY else 1)

    def quantize_amount(self, amount: Decimal, rounding: int = 1) -> Decimal:
        """
        金额按 amount_precision 取整

        rounding: 0 四舍五入 1 进一法 2 舍弃
        """
        return _fit(amount, self.amount_precision, rounding)

    def update_mark(self, price: Decimal, timestamp: int):
        if self.mark_time is not None and timestamp < self.mark_time:
            raise InvariantViolation(
                f"{self.symbol} 标记价格时间倒退: {timestamp} < {self.mark_time}")
        self.mark_price = price
        self.mark_time = timestamp

    @classmethod
    def from_config(cls, config) -> "TradingPair":
        return cls(symbol=config.symbol, base=config.base, quote=config.quote, ins_type=config.ins_type,
                   timeframe=config.timeframe, funding=config.funding,
                   quantity_precision=config.quantity_precision, price_precision=config.price_precision,
                   leverage=config.leverage)
