#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
持仓跟踪：维护各交易对的标记价格、持仓均价和已实现盈亏
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Iterable

from multipair_core.manager.asset import AssetManager
from multipair_core.models import Fill, Order, OrderSide, PairView, TradingPair
from multipair_core.utils import get_logger

logger = get_logger(__name__)
ZERO = Decimal(0)


@dataclass
class PositionState:
    """
    单个交易对的成本记录

    quantity: 通过该交易对累计持有的基础币数量
    avg_cost: 持仓均价(含买入手续费)
    realized_pnl: 已实现盈亏(计价币，已扣卖出手续费)
    """
    quantity: Decimal = ZERO
    avg_cost: Decimal = ZERO
    realized_pnl: Decimal = ZERO
    fees: Decimal = ZERO
    seeded: bool = False


class PositionTracker:
    """
    持仓跟踪器，策略只能通过快照读取

    初始资金中已有的基础币，在首次获得标记价格时按该价格建立成本
    (同一基础币只在第一个现货交易对上建立一次)。
    永续交易对的数量、均价和已实现盈亏直接读取资产管理器中的 SwapPosition。
    """

    def __init__(self, asset_manager: AssetManager, pairs: Dict[str, TradingPair]):
        self.asset_manager = asset_manager
        self.pairs = pairs
        self._states: Dict[str, PositionState] = {symbol: PositionState() for symbol in pairs}
        self._seeded_currencies = set()

    def state(self, pair: str) -> PositionState:
        return self._states.setdefault(pair, PositionState())

    def update_mark(self, pair: str, price: Decimal, timestamp: int):
        trading_pair = self.pairs[pair]
        trading_pair.update_mark(price, timestamp)
        state = self.state(pair)
        if state.seeded:
            return
        state.seeded = True
        if trading_pair.is_swap:
            return
        holdings = self.asset_manager.total(trading_pair.base)
        if holdings > 0 and trading_pair.base not in self._seeded_currencies:
            state.quantity += holdings
            state.avg_cost = price
            logger.info(f"{pair} 初始持仓 {holdings} {trading_pair.base}, 按标记价 {price} 建立成本")
        self._seeded_currencies.add(trading_pair.base)

    def on_fill(self, fill: Fill):
        state = self.state(fill.pair)
        if self.pairs[fill.pair].is_swap:
            # 永续的均价与盈亏由资产管理器的持仓记录
            state.fees += fill.fee
            return
        if fill.side == OrderSide.BUY:
            received = fill.quantity - fill.fee
            cost = fill.price * fill.quantity
            total_cost = state.avg_cost * state.quantity + cost
            state.quantity += received
            state.avg_cost = total_cost / state.quantity if state.quantity > 0 else ZERO
            state.fees += fill.fee * fill.price
        else:
            proceeds = fill.price * fill.quantity - fill.fee
            state.realized_pnl += proceeds - state.avg_cost * fill.quantity
            state.quantity -= fill.quantity
            state.fees += fill.fee
            if state.quantity <= 0:
                if state.quantity < 0:
                    logger.warning(f"{fill.pair} 卖出数量超过跟踪持仓, 持仓归零")
                state.quantity = ZERO
                state.avg_cost = ZERO

    def position_qty(self, pair: str) -> Decimal:
        """现货为基础币总持仓(可用+冻结)，永续为带符号的合约持仓"""
        trading_pair = self.pairs[pair]
        if trading_pair.is_swap:
            return self.asset_manager.position(pair).quantity
        return self.asset_manager.total(trading_pair.base)

    def avg_cost(self, pair: str) -> Decimal:
        if self.pairs[pair].is_swap:
            return self.asset_manager.position(pair).entry_price
        return self.state(pair).avg_cost

    def realized_pnl(self, pair: str) -> Decimal:
        if self.pairs[pair].is_swap:
            return self.asset_manager.position(pair).realized_pnl
        return self.state(pair).realized_pnl

    def unrealized_pnl(self, pair: str) -> Decimal:
        mark = self.pairs[pair].mark_price
        if mark is None:
            return ZERO
        return (mark - self.avg_cost(pair)) * self.position_qty(pair)

    def position_ratio(self, pair: str) -> Decimal:
        """持仓市值 / 总权益(以该交易对计价币计)，永续空头为负"""
        trading_pair = self.pairs[pair]
        if trading_pair.mark_price is None:
            return ZERO
        equity = self.asset_manager.total_equity(trading_pair.quote)
        if equity <= 0:
            return ZERO
        return self.position_qty(pair) * trading_pair.mark_price / equity

    def view(self, pair: str, open_orders: Iterable[Order] = ()) -> PairView:
        trading_pair = self.pairs[pair]
        return PairView(symbol=pair, base=trading_pair.base, quote=trading_pair.quote,
                        mark_price=trading_pair.mark_price, mark_time=trading_pair.mark_time,
                        position_qty=self.position_qty(pair), avg_cost=self.avg_cost(pair),
                        realized_pnl=self.realized_pnl(pair), unrealized_pnl=self.unrealized_pnl(pair),
                        position_ratio=self.position_ratio(pair), open_orders=tuple(open_orders))

    def get_state(self) -> Dict[str, Dict[str, str]]:
        return {pair: {"quantity": str(s.quantity), "avg_cost": str(s.avg_cost), "realized_pnl": str(s.realized_pnl)}
                for pair, s in sorted(self._states.items())}
