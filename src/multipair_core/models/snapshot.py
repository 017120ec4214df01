#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
策略可见的只读视图与业务事件。

策略只能看到快照，不能直接修改账户、订单或仓位状态。
"""
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Mapping, Optional, Tuple

from .order import Fill, Order, OrderIntent, CancelIntent


@dataclass(frozen=True)
class AssetView:
    currency: str
    free: Decimal
    locked: Decimal

    @property
    def total(self) -> Decimal:
        return self.free + self.locked


@dataclass(frozen=True)
class PairView:
    """
    单个交易对的只读视图

    position_qty 现货为基础币总持仓(可用+冻结)，永续为带符号合约持仓(空头为负)；
    position_ratio 为持仓市值占总权益的比例
    """
    symbol: str
    base: str
    quote: str
    mark_price: Optional[Decimal]
    mark_time: Optional[int]
    position_qty: Decimal
    avg_cost: Decimal
    realized_pnl: Decimal
    unrealized_pnl: Decimal
    position_ratio: Decimal
    open_orders: Tuple[Order, ...] = ()


@dataclass(frozen=True)
class MarketSnapshot:
    """
    某一时刻的账户与行情快照

    market_order_buffer 为运行配置中市价单按标记价额外冻结的比例，策略据此估算市价单可下数量
    """
    timestamp: int
    quote_currency: str
    equity: Decimal
    balances: Mapping[str, AssetView]
    pairs: Mapping[str, PairView]
    event: Any = None
    market_order_buffer: Decimal = Decimal("0.05")

    def pair(self, symbol: str) -> PairView:
        return self.pairs[symbol]

    def free(self, currency: str) -> Decimal:
        view = self.balances.get(currency)
        return view.free if view else Decimal(0)

    def total(self, currency: str) -> Decimal:
        view = self.balances.get(currency)
        return view.total if view else Decimal(0)


@dataclass(frozen=True)
class FillEvent:
    """成交通知，order 为成交后的订单副本"""
    fill: Fill
    order: Order
    snapshot: MarketSnapshot = None


@dataclass(frozen=True)
class LiquidationEvent:
    """
    资金费扣款超过可用计价币时触发
    """
    pair: str
    timestamp: int
    required: Decimal
    available: Decimal
    position_qty: Decimal
    mark_price: Decimal


@dataclass(frozen=True)
class FundingSettlementEvent:
    """
    资金费结算结果

    payment > 0 表示账户支出，< 0 表示收入；shortfall 为强平后仍无法覆盖、被截断的金额
    liquidation_fills 为强平卖出产生的成交
    """
    pair: str
    timestamp: int
    rate: Decimal
    position_qty: Decimal
    mark_price: Decimal
    payment: Decimal
    shortfall: Decimal = Decimal(0)
    liquidation: Optional[LiquidationEvent] = None
    liquidation_fills: Tuple[Fill, ...] = ()
    snapshot: MarketSnapshot = None

    @property
    def liquidated(self) -> bool:
        return self.liquidation is not None


@dataclass(frozen=True)
class Rejection:
    """被拒绝的策略意图"""
    timestamp: int
    intent: Any
    error_type: str
    reason: str
    extra: dict = field(default_factory=dict)

    @property
    def is_cancel(self) -> bool:
        return isinstance(self.intent, CancelIntent)

    @property
    def is_order(self) -> bool:
        return isinstance(self.intent, OrderIntent)
