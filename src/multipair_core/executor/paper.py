#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
模拟交易所适配器，用K线驱动挂单成交，作为实盘链路的参考实现
"""
from typing import Any, Dict

from multipair_core.models import FillReport, KLine, LiquidityType, Order, OrderSide, OrderType
from multipair_core.utils import get_logger

from .base import ExchangeAdapter

logger = get_logger(__name__)


class PaperExchangeAdapter(ExchangeAdapter):
    """
    模拟交易所

    收到K线后按与回测相同的触价规则成交：限价按限价成交，市价按开盘价成交。
    """
    display_name = "模拟交易所"

    def __init__(self):
        super().__init__()
        self.orders: Dict[int, Order] = {}
        self.sent = []
        self.canceled = []

    def send_order(self, order: Order):
        logger.info(f"模拟交易所收到订单: {order}")
        self.orders[order.order_id] = order
        self.sent.append(order.order_id)

    def cancel_order(self, order_id: int, pair: str):
        if self.orders.pop(order_id, None) is not None:
            self.canceled.append(order_id)
            logger.info(f"模拟交易所撤单: {pair} {order_id}")

    def on_market_data(self, data: Any):
        if not isinstance(data, KLine):
            return
        for order in sorted(self.orders.values(), key=lambda o: o.seq):
            if order.pair != data.pair:
                continue
            if order.order_type == OrderType.MarketOrder:
                price, liquidity = data.open, LiquidityType.TAKER
            elif (order.side == OrderSide.BUY and data.low <= order.price) or \
                    (order.side == OrderSide.SELL and data.high >= order.price):
                price, liquidity = order.price, LiquidityType.MAKER
            else:
                continue
            del self.orders[order.order_id]
            self._fill_callback(FillReport(order_id=order.order_id, price=price, quantity=order.remaining,
                                           timestamp=data.end_time, liquidity=liquidity))

    def on_stop(self):
        self.orders.clear()
