#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
资产管理器：多币种可用/冻结余额、成交结算、永续持仓保证金、资金费结算与权益估值。

所有资产变动都会生成一条 Transaction 并发布到事件总线。
"""
import threading
from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from multipair_core.errors import InsufficientBalanceError, InvariantViolation
from multipair_core.event import Event, EventBus, EventSource, EventType
from multipair_core.models import (
    AssetView,
    Fill,
    FundingSettlementEvent,
    LiquidationEvent,
    LiquidityType,
    Order,
    OrderSide,
    SwapPosition,
    TradingPair,
    Transaction,
    TransactionType,
)
from multipair_core.utils import get_logger, thread_lock, to_decimal

logger = get_logger(__name__)
_asset_lock = threading.RLock()
ZERO = Decimal(0)


@dataclass
class Asset:
    """单币种余额"""
    currency: str
    free: Decimal = ZERO
    locked: Decimal = ZERO

    @property
    def total(self) -> Decimal:
        return self.free + self.locked


class LiquidationPolicy(ABC):
    """
    强平策略：资金费扣款超过可用计价币时调用，负责补足计价币
    """

    @abstractmethod
    def liquidate(self, event: LiquidationEvent, asset_manager: "AssetManager") -> List[Fill]:
        """
        执行强平

        返回:
            强平产生的成交(order_id 为 None)
        """
        pass


class ClosePositionPolicy(LiquidationPolicy):
    """
    默认强平：撤销该交易对全部挂单，以标记价按 taker 费率平仓

    现货卖出全部可用基础币；永续按持仓方向反向平掉全部合约。
    """

    def __init__(self, order_manager, fee_model):
        self.order_manager = order_manager
        self.fee_model = fee_model

    def liquidate(self, event: LiquidationEvent, asset_manager: "AssetManager") -> List[Fill]:
        pair = asset_manager.pairs[event.pair]
        canceled = self.order_manager.cancel_all(pair=event.pair, timestamp=event.timestamp, reason="强平撤单")
        if pair.is_swap:
            return self._close_swap(event, pair, asset_manager, len(canceled))
        quantity = asset_manager.get(pair.base).free
        if quantity <= 0:
            logger.warning(f"{event.pair} 强平时没有可卖出的 {pair.base}, 撤单 {len(canceled)} 笔")
            return []
        fee = self.order_manager.calculate_fee(pair, OrderSide.SELL, event.mark_price, quantity, LiquidityType.TAKER)
        asset_manager.settle_liquidation(pair, quantity, event.mark_price, fee, event.timestamp)
        logger.warning(f"{event.pair} 强平卖出 {quantity} {pair.base} @ {event.mark_price}, 手续费 {fee} {pair.quote}")
        return [Fill(order_id=None, pair=event.pair, side=OrderSide.SELL, price=event.mark_price, quantity=quantity,
                     fee=fee, fee_currency=pair.quote, timestamp=event.timestamp, liquidity=LiquidityType.TAKER)]

    def _close_swap(self, event: LiquidationEvent, pair: TradingPair, asset_manager: "AssetManager",
                    canceled: int) -> List[Fill]:
        position = asset_manager.position(pair.symbol)
        if position.is_flat:
            logger.warning(f"{event.pair} 强平时没有永续持仓, 撤单 {canceled} 笔")
            return []
        side = OrderSide.SELL if position.quantity > 0 else OrderSide.BUY
        quantity = abs(position.quantity)
        fee = self.order_manager.calculate_fee(pair, side, event.mark_price, quantity, LiquidityType.TAKER)
        fee = asset_manager.close_swap_position(pair, event.mark_price, fee, event.timestamp)
        logger.warning(f"{event.pair} 强平{side.name}平仓 {quantity} @ {event.mark_price}, 手续费 {fee} {pair.quote}")
        return [Fill(order_id=None, pair=event.pair, side=side, price=event.mark_price, quantity=quantity,
                     fee=fee, fee_currency=pair.quote, timestamp=event.timestamp, liquidity=LiquidityType.TAKER)]


class AssetManager:
    """
    资产管理器

    free/locked 任何时刻不为负；locked 等于所有活动订单的剩余冻结之和(由 verify 检查)。
    永续交易对不持有基础币，成交改变的是带符号的合约持仓与保证金(SwapPosition)。
    """

    def __init__(self, initial_capital: Dict[str, Decimal] = None, pairs: Dict[str, TradingPair] = None,
                 event_bus: EventBus = None, liquidation_policy: LiquidationPolicy = None, timestamp: int = None):
        self.pairs: Dict[str, TradingPair] = pairs if pairs is not None else {}
        self.event_bus = event_bus or EventBus()
        self.liquidation_policy = liquidation_policy
        self._assets: Dict[str, Asset] = {}
        self._positions: Dict[str, SwapPosition] = {}
        self._unpriced_warned = set()
        self._source = EventSource.of(self)
        for currency, amount in (initial_capital or {}).items():
            self.deposit(currency, amount, timestamp)

    def get(self, currency: str) -> Asset:
        if currency not in self._assets:
            self._assets[currency] = Asset(currency)
        return self._assets[currency]

    def free(self, currency: str) -> Decimal:
        return self.get(currency).free

    def locked(self, currency: str) -> Decimal:
        return self.get(currency).locked

    def total(self, currency: str) -> Decimal:
        return self.get(currency).total

    @property
    def currencies(self) -> List[str]:
        return sorted(self._assets.keys())

    def balances(self) -> Dict[str, AssetView]:
        return {c: AssetView(c, a.free, a.locked) for c, a in sorted(self._assets.items())}

    def position(self, pair: str) -> SwapPosition:
        """永续交易对的持仓，没有时创建空仓"""
        if pair not in self._positions:
            trading_pair = self.pairs.get(pair)
            if trading_pair is None or not trading_pair.is_swap:
                raise InvariantViolation(f"{pair} 不是永续交易对")
            self._positions[pair] = SwapPosition(pair=pair, quote=trading_pair.quote)
        return self._positions[pair]

    @property
    def positions(self) -> Dict[str, SwapPosition]:
        return dict(sorted(self._positions.items()))

    def _journal(self, tx_type: TransactionType, currency: str, amount: Decimal, before: Decimal,
                 after: Decimal, timestamp: int = None, order_id: int = None, desc: str = None):
        tx = Transaction(type=tx_type, currency=currency, amount=amount, balance_before=before, balance_after=after,
                         timestamp=timestamp, order_id=order_id, desc=desc)
        self.event_bus.publish_event(Event(EventType.TRANSACTION, tx, self._source))

    def _credit(self, tx_type: TransactionType, currency: str, amount: Decimal, timestamp: int = None,
                order_id: int = None, desc: str = None):
        """可用余额增减 amount(可为负)并记账"""
        if amount == 0:
            return
        asset = self.get(currency)
        before = asset.total
        asset.free += amount
        self._journal(tx_type, currency, amount, before, asset.total, timestamp, order_id, desc)

    @thread_lock(_asset_lock)
    def deposit(self, currency: str, amount, timestamp: int = None):
        amount = to_decimal(amount, currency)
        if amount < 0:
            raise InvariantViolation(f"入金金额不能为负: {currency} {amount}")
        asset = self.get(currency)
        before = asset.total
        asset.free += amount
        self._journal(TransactionType.DEPOSIT, currency, amount, before, asset.total, timestamp, desc="初始资金")

    @thread_lock(_asset_lock)
    def reserve(self, currency: str, amount: Decimal, order_id: int = None, timestamp: int = None):
        """冻结资金，可用不足属于程序错误"""
        if amount < 0:
            raise InvariantViolation(f"冻结金额不能为负: {currency} {amount}")
        asset = self.get(currency)
        if asset.free < amount:
            raise InvariantViolation(f"{currency} 冻结失败: 需要 {amount}, 可用 {asset.free}")
        before = asset.free
        asset.free -= amount
        asset.locked += amount
        self._journal(TransactionType.FROZEN, currency, -amount, before, asset.free, timestamp, order_id)

    @thread_lock(_asset_lock)
    def try_reserve(self, currency: str, amount: Decimal, order_id: int = None, timestamp: int = None):
        """为新订单冻结资金，可用不足时抛出可恢复的 InsufficientBalanceError"""
        asset = self.get(currency)
        if asset.free < amount:
            raise InsufficientBalanceError(currency, amount, asset.free)
        self.reserve(currency, amount, order_id, timestamp)

    @thread_lock(_asset_lock)
    def release(self, currency: str, amount: Decimal, order_id: int = None, timestamp: int = None):
        """解冻资金"""
        if amount < 0:
            raise InvariantViolation(f"解冻金额不能为负: {currency} {amount}")
        asset = self.get(currency)
        if asset.locked < amount:
            raise InvariantViolation(f"{currency} 解冻失败: 需要 {amount}, 冻结 {asset.locked}")
        if amount == 0:
            return
        before = asset.free
        asset.locked -= amount
        asset.free += amount
        self._journal(TransactionType.UNFROZEN, currency, amount, before, asset.free, timestamp, order_id)

    @thread_lock(_asset_lock)
    def apply_fill(self, order: Order, fill_price: Decimal, fill_qty: Decimal, fee: Decimal, timestamp: int = None):
        """
        结算一笔成交

        买单: 冻结计价币减少 fill_qty * fill_price，可用基础币增加 fill_qty - fee
        卖单: 冻结基础币减少 fill_qty，可用计价币增加 fill_qty * fill_price - fee
        订单最后一笔成交后，剩余冻结(市价买单的预留部分)退回可用。
        永续交易对按 _apply_swap_fill 结算。先完成全部校验再修改余额。
        """
        pair = self.pairs.get(order.pair)
        if pair is None:
            raise InvariantViolation(f"未知交易对: {order.pair}")
        if fill_qty <= 0 or fill_price <= 0 or fee < 0:
            raise InvariantViolation(f"订单{order.order_id}成交参数非法: qty={fill_qty}, price={fill_price}, fee={fee}")
        if fill_qty > order.remaining:
            raise InvariantViolation(f"订单{order.order_id}成交数量 {fill_qty} 超过剩余 {order.remaining}")
        if pair.is_swap:
            self._apply_swap_fill(order, pair, fill_price, fill_qty, fee, timestamp)
            return
        notional = fill_qty * fill_price
        if order.side == OrderSide.BUY:
            pay_currency, pay_amount = pair.quote, notional
            recv_currency, recv_amount = pair.base, fill_qty - fee
        else:
            pay_currency, pay_amount = pair.base, fill_qty
            recv_currency, recv_amount = pair.quote, notional - fee
        if recv_amount < 0:
            raise InvariantViolation(f"订单{order.order_id}手续费 {fee} 超过成交收入")
        if order.reserve_currency != pay_currency or order.reserved_amount < pay_amount:
            raise InvariantViolation(
                f"订单{order.order_id}冻结不足: 需要 {pay_amount} {pay_currency}, 冻结 {order.reserved_amount} {order.reserve_currency}")
        pay_asset = self.get(pay_currency)
        if pay_asset.locked < pay_amount:
            raise InvariantViolation(f"{pay_currency} 冻结余额 {pay_asset.locked} 小于成交支出 {pay_amount}")

        before = pay_asset.total
        pay_asset.locked -= pay_amount
        order.reserved_amount -= pay_amount
        self._journal(TransactionType.TRADE, pay_currency, -pay_amount, before, pay_asset.total, timestamp,
                      order.order_id, f"{order.pair} {order.side.name} 支出")

        self._credit(TransactionType.TRADE, recv_currency, fill_qty if order.side == OrderSide.BUY else notional,
                     timestamp, order.order_id, f"{order.pair} {order.side.name} 收入")
        self._credit(TransactionType.FEE, recv_currency, -fee, timestamp, order.order_id, "手续费")

        if fill_qty == order.remaining and order.reserved_amount > 0:
            surplus = order.reserved_amount
            order.reserved_amount = ZERO
            self.release(pay_currency, surplus, order.order_id, timestamp)

    def _apply_swap_fill(self, order: Order, pair: TradingPair, fill_price: Decimal, fill_qty: Decimal,
                         fee: Decimal, timestamp: int = None):
        """
        永续成交: 先平掉反向持仓(释放保证金并结算盈亏)，剩余数量开仓并从可用计价币转入保证金

        订单按成交比例解冻计价币，手续费以计价币从可用余额扣除。
        开仓保证金不足时按可用余额计，持仓杠杆相应提高。
        """
        quote = self.get(pair.quote)
        if fill_qty == order.remaining:
            part = order.reserved_amount
        else:
            part = pair.quantize_amount(order.reserved_amount * fill_qty / order.remaining, 2)
        if order.reserve_currency != pair.quote or quote.locked < part:
            raise InvariantViolation(
                f"订单{order.order_id}冻结不足: 需要 {part} {pair.quote}, 冻结 {order.reserved_amount} {order.reserve_currency}")
        position = self.position(pair.symbol)
        direction = 1 if order.side == OrderSide.BUY else -1
        close_qty = min(fill_qty, abs(position.quantity)) if position.quantity * direction < 0 else ZERO
        open_qty = fill_qty - close_qty
        released, pnl = self._close_amounts(position, pair, close_qty, fill_price) if close_qty else (ZERO, ZERO)
        available = quote.free + part + released
        if fee > available:
            raise InvariantViolation(f"订单{order.order_id}手续费 {fee} 超过可用 {available} {pair.quote}")
        pnl = self._clamp_loss(pair, pnl, available - fee)

        order.reserved_amount -= part
        self.release(pair.quote, part, order.order_id, timestamp)
        if close_qty:
            self._reduce_position(position, pair, close_qty, released, pnl, TransactionType.TRADE, timestamp,
                                  order.order_id)
        self._credit(TransactionType.FEE, pair.quote, -fee, timestamp, order.order_id, "手续费")
        if open_qty:
            self._open_position(position, pair, open_qty * direction, fill_price, timestamp, order.order_id)

    @staticmethod
    def _close_amounts(position: SwapPosition, pair: TradingPair, quantity: Decimal,
                       price: Decimal) -> Tuple[Decimal, Decimal]:
        """平仓 quantity 张时释放的保证金和实现盈亏"""
        held = abs(position.quantity)
        if quantity == held:
            released = position.margin
        else:
            released = pair.quantize_amount(position.margin * quantity / held, 2)
        sign = 1 if position.quantity > 0 else -1
        pnl = pair.quantize_amount(quantity * (price - position.entry_price) * sign, 0)
        return released, pnl

    @staticmethod
    def _clamp_loss(pair: TradingPair, pnl: Decimal, cover: Decimal) -> Decimal:
        if pnl >= -cover:
            return pnl
        logger.error(f"{pair.symbol} 平仓亏损 {-pnl} 超过保证金与可用余额 {cover}, 截断 {-pnl - cover} {pair.quote}")
        return -cover

    def _reduce_position(self, position: SwapPosition, pair: TradingPair, quantity: Decimal, released: Decimal,
                         pnl: Decimal, tx_type: TransactionType, timestamp: int = None, order_id: int = None):
        sign = 1 if position.quantity > 0 else -1
        position.quantity -= quantity * sign
        position.margin -= released
        position.realized_pnl += pnl
        if position.quantity == 0:
            position.entry_price = ZERO
        self._credit(TransactionType.MARGIN, pair.quote, released, timestamp, order_id, f"{pair.symbol} 释放保证金")
        self._credit(tx_type, pair.quote, pnl, timestamp, order_id, f"{pair.symbol} 平仓盈亏")

    def _open_position(self, position: SwapPosition, pair: TradingPair, signed_qty: Decimal, price: Decimal,
                       timestamp: int = None, order_id: int = None):
        quote = self.get(pair.quote)
        quantity = abs(signed_qty)
        required = pair.quantize_amount(quantity * price / pair.leverage)
        margin = min(required, quote.free)
        if margin < required:
            logger.warning(f"{pair.symbol} 可用 {pair.quote} {quote.free} 不足开仓保证金 {required}")
        held = abs(position.quantity)
        position.entry_price = (held * position.entry_price + quantity * price) / (held + quantity)
        position.quantity += signed_qty
        position.margin += margin
        self._credit(TransactionType.MARGIN, pair.quote, -margin, timestamp, order_id, f"{pair.symbol} 开仓保证金")

    @thread_lock(_asset_lock)
    def close_swap_position(self, pair: TradingPair, price: Decimal, fee: Decimal, timestamp: int = None) -> Decimal:
        """
        按 price 强平全部永续持仓

        返回:
            实际扣除的手续费，不超过可用计价币与释放保证金之和
        """
        position = self.position(pair.symbol)
        if position.is_flat:
            raise InvariantViolation(f"{pair.symbol} 没有可平的永续持仓")
        quote = self.get(pair.quote)
        quantity = abs(position.quantity)
        released, pnl = self._close_amounts(position, pair, quantity, price)
        fee = min(fee, quote.free + released)
        pnl = self._clamp_loss(pair, pnl, quote.free + released - fee)
        self._reduce_position(position, pair, quantity, released, pnl, TransactionType.LIQUIDATION, timestamp)
        self._credit(TransactionType.FEE, pair.quote, -fee, timestamp, desc=f"{pair.symbol} 强平手续费")
        return fee

    @thread_lock(_asset_lock)
    def apply_funding(self, pair: str, rate: Decimal, position_qty: Decimal, mark_price: Decimal,
                      timestamp: int = None) -> FundingSettlementEvent:
        """
        结算资金费 payment = position_qty * mark_price * rate

        payment > 0 从可用计价币扣除，< 0 计入可用计价币。
        扣款超过可用计价币时发布 LiquidationEvent 并交给强平策略处理，
        强平后仍不足的部分截断为零并记录在 shortfall。
        """
        trading_pair = self.pairs.get(pair)
        if trading_pair is None:
            raise InvariantViolation(f"未知交易对: {pair}")
        quote = self.get(trading_pair.quote)
        payment = trading_pair.quantize_amount(position_qty * mark_price * rate, 0)
        liquidation = None
        fills = []
        shortfall = ZERO

        if payment > quote.free:
            liquidation = LiquidationEvent(pair=pair, timestamp=timestamp, required=payment, available=quote.free,
                                           position_qty=position_qty, mark_price=mark_price)
            logger.warning(f"{pair} 资金费 {payment} 超过可用 {trading_pair.quote} {quote.free}, 触发强平")
            self.event_bus.publish_event(Event(EventType.LIQUIDATION, liquidation, self._source))
            if self.liquidation_policy is not None:
                fills = self.liquidation_policy.liquidate(liquidation, self)
            if payment > quote.free:
                shortfall = payment - quote.free
                logger.error(f"{pair} 强平后仍不足以支付资金费, 截断 {shortfall} {trading_pair.quote}")

        self._credit(TransactionType.FUNDING, trading_pair.quote, shortfall - payment, timestamp,
                     desc=f"{pair} 资金费率 {rate}")
        settlement = FundingSettlementEvent(pair=pair, timestamp=timestamp, rate=rate, position_qty=position_qty,
                                            mark_price=mark_price, payment=payment, shortfall=shortfall,
                                            liquidation=liquidation, liquidation_fills=tuple(fills))
        self.event_bus.publish_event(Event(EventType.FUNDING_SETTLED, settlement, self._source))
        return settlement

    @thread_lock(_asset_lock)
    def settle_liquidation(self, pair: TradingPair, quantity: Decimal, price: Decimal, fee: Decimal,
                           timestamp: int = None):
        """强平卖出可用基础币"""
        base = self.get(pair.base)
        if quantity <= 0 or base.free < quantity:
            raise InvariantViolation(f"{pair.symbol} 强平数量非法: {quantity}, 可用 {base.free}")
        proceeds = quantity * price - fee
        if proceeds < 0:
            raise InvariantViolation(f"{pair.symbol} 强平手续费 {fee} 超过成交额")
        self._credit(TransactionType.LIQUIDATION, pair.base, -quantity, timestamp, desc=f"{pair.symbol} 强平卖出")
        self._credit(TransactionType.LIQUIDATION, pair.quote, proceeds, timestamp,
                     desc=f"{pair.symbol} 强平收入(已扣手续费 {fee})")

    def _mark(self, pair: TradingPair, prices: Dict[str, Decimal] = None) -> Optional[Decimal]:
        return prices.get(pair.symbol, pair.mark_price) if prices else pair.mark_price

    def price_of(self, currency: str, quote_currency: str, prices: Dict[str, Decimal] = None) -> Optional[Decimal]:
        """
        按标记价格换算 1 单位 currency 的 quote_currency 价值，无法定价时返回 None

        在已有标记价的交易对之间按广度优先查找换算路径(正向乘标记价，反向除以标记价)，
        取经过交易对最少的路径，同样长度时按交易对配置顺序。
        prices 可按交易对覆盖标记价格
        """
        if currency == quote_currency:
            return Decimal(1)
        edges: Dict[str, List[Tuple[str, Decimal, bool]]] = {}
        for pair in self.pairs.values():
            mark = self._mark(pair, prices)
            if mark is None or mark <= 0:
                continue
            edges.setdefault(pair.base, []).append((pair.quote, mark, False))
            edges.setdefault(pair.quote, []).append((pair.base, mark, True))
        visited = {currency}
        queue = deque([(currency, Decimal(1))])
        while queue:
            node, value = queue.popleft()
            for target, mark, inverse in edges.get(node, ()):
                if target in visited:
                    continue
                converted = value / mark if inverse else value * mark
                if target == quote_currency:
                    return converted
                visited.add(target)
                queue.append((target, converted))
        return None

    def _warn_unpriced(self, currency: str, quote_currency: str):
        if currency not in self._unpriced_warned:
            self._unpriced_warned.add(currency)
            logger.warning(f"{currency} 没有可用的 {quote_currency} 标记价格, 估值按0计算")

    def total_equity(self, quote_currency: str, prices: Dict[str, Decimal] = None) -> Decimal:
        """
        总权益 = Σ(可用 + 冻结) × 标记价格 + Σ永续持仓价值(保证金 + 未实现盈亏)

        无法定价的币种按 0 计并告警
        """
        equity = ZERO
        for currency, asset in sorted(self._assets.items()):
            if asset.total == 0:
                continue
            price = self.price_of(currency, quote_currency, prices)
            if price is None:
                self._warn_unpriced(currency, quote_currency)
                continue
            equity += asset.total * price
        for symbol, position in sorted(self._positions.items()):
            if position.is_flat and position.margin == 0:
                continue
            value = position.value(self._mark(self.pairs[symbol], prices))
            price = self.price_of(position.quote, quote_currency, prices)
            if price is None:
                self._warn_unpriced(position.quote, quote_currency)
                continue
            equity += value * price
        return equity

    def verify(self, order_manager=None):
        """
        检查余额不变量: free/locked 非负，locked 等于活动订单剩余冻结之和，永续保证金非负
        """
        reserved = order_manager.reserved_by_currency() if order_manager is not None else None
        for currency, asset in self._assets.items():
            if asset.free < 0 or asset.locked < 0:
                raise InvariantViolation(f"{currency} 余额为负: free={asset.free}, locked={asset.locked}")
            if reserved is not None and asset.locked != reserved.get(currency, ZERO):
                raise InvariantViolation(
                    f"{currency} 冻结余额 {asset.locked} 与活动订单冻结 {reserved.get(currency, ZERO)} 不一致")
        if reserved is not None:
            for currency, amount in reserved.items():
                if amount != 0 and currency not in self._assets:
                    raise InvariantViolation(f"{currency} 存在订单冻结 {amount} 但没有资产记录")
        for symbol, position in self._positions.items():
            if position.margin < 0:
                raise InvariantViolation(f"{symbol} 保证金为负: {position.margin}")

    def get_state(self) -> Dict[str, Dict[str, str]]:
        state = {c: {"free": str(a.free), "locked": str(a.locked)} for c, a in sorted(self._assets.items())}
        for symbol, position in sorted(self._positions.items()):
            state[symbol] = {"quantity": str(position.quantity), "entry_price": str(position.entry_price),
                             "margin": str(position.margin)}
        return state
