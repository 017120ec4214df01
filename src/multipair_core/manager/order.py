#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
订单管理器：订单校验与资金冻结、撤单、基于K线的撮合以及实盘成交回报处理。
"""
import copy
import dataclasses
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from multipair_core.errors import InvalidStateError, OrderNotFoundError, ValidationError
from multipair_core.event import Event, EventBus, EventSource, EventType
from multipair_core.executor.fee import FeeModel
from multipair_core.models import (
    Fill,
    FillPricePolicy,
    KLine,
    LiquidityType,
    Order,
    OrderIntent,
    OrderSide,
    OrderType,
    TradingPair,
)
from multipair_core.utils import IdGenerator, decimal_quantize, get_logger

from .asset import AssetManager

logger = get_logger(__name__)
ZERO = Decimal(0)


class OrderManager:
    """
    订单管理器

    活动订单按交易对分组保存，进入终态(FILLED/CANCELED)后移入归档，订单ID不复用。
    """

    def __init__(self, asset_manager: AssetManager, pairs: Dict[str, TradingPair] = None, fee_model: FeeModel = None,
                 event_bus: EventBus = None, id_generator: IdGenerator = None,
                 fill_price_policy: FillPricePolicy = FillPricePolicy.LIMIT_PRICE,
                 market_order_buffer: Decimal = Decimal("0.05"), volume_fill_ratio: Optional[Decimal] = None):
        self.asset_manager = asset_manager
        self.pairs = pairs if pairs is not None else asset_manager.pairs
        self.fee_model = fee_model or FeeModel()
        self.event_bus = event_bus or asset_manager.event_bus
        self.id_generator = id_generator or IdGenerator()
        self.fill_price_policy = fill_price_policy
        self.market_order_buffer = market_order_buffer
        self.volume_fill_ratio = volume_fill_ratio

        self._active: Dict[str, Dict[int, Order]] = {}
        self._index: Dict[int, Order] = {}
        self._archived: Dict[int, Order] = {}
        self._seq = 0
        self._source = EventSource.of(self)

    # ------------------------------------------------------------------ 查询
    def get(self, order_id: int) -> Order:
        order = self._index.get(order_id) or self._archived.get(order_id)
        if order is None:
            raise OrderNotFoundError(order_id)
        return order

    def active_orders(self, pair: str = None) -> List[Order]:
        if pair is not None:
            return sorted(self._active.get(pair, {}).values(), key=lambda o: o.seq)
        return sorted(self._index.values(), key=lambda o: o.seq)

    @property
    def archived_orders(self) -> List[Order]:
        return list(self._archived.values())

    def reserved_by_currency(self) -> Dict[str, Decimal]:
        reserved: Dict[str, Decimal] = {}
        for order in self._index.values():
            reserved[order.reserve_currency] = reserved.get(order.reserve_currency, ZERO) + order.reserved_amount
        return reserved

    def _publish(self, event_type: EventType, order: Order, data=None):
        self.event_bus.publish_event(Event(event_type, data if data is not None else copy.copy(order), self._source))

    # ------------------------------------------------------------------ 下单/撤单
    def _validate(self, intent: OrderIntent) -> Tuple[TradingPair, OrderIntent]:
        """
        校验意图并按交易对精度截断数量和价格

        返回:
            (交易对, 截断后的意图)
        """
        if not isinstance(intent, OrderIntent):
            raise ValidationError(f"无法识别的下单意图: {intent!r}")
        pair = self.pairs.get(intent.pair)
        if pair is None:
            raise ValidationError(f"未知交易对: {intent.pair}")
        if not isinstance(intent.side, OrderSide):
            raise ValidationError(f"非法买卖方向: {intent.side!r}")
        if not isinstance(intent.quantity, Decimal) or not intent.quantity.is_finite() or intent.quantity <= 0:
            raise ValidationError(f"下单数量必须为正: {intent.quantity}")
        if intent.order_type == OrderType.LimitOrder:
            if intent.price is None or not intent.price.is_finite() or intent.price <= 0:
                raise ValidationError(f"限价单价格必须为正: {intent.price}")
        elif intent.order_type == OrderType.MarketOrder:
            if intent.price is not None:
                raise ValidationError("市价单不能指定价格")
            if (intent.side == OrderSide.BUY or pair.is_swap) and (pair.mark_price is None or pair.mark_price <= 0):
                raise ValidationError(f"{intent.pair} 尚无标记价格，无法估算市价单冻结金额")
        else:
            raise ValidationError(f"非法订单类型: {intent.order_type!r}")

        quantity = pair.quantize_quantity(intent.quantity)
        if quantity <= 0:
            raise ValidationError(f"下单数量 {intent.quantity} 按 {pair.quantity_precision} 位精度截断后为0")
        price = intent.price
        if price is not None:
            price = pair.quantize_price(price, intent.side)
            if price <= 0:
                raise ValidationError(f"限价 {intent.price} 按 {pair.price_precision} 位精度截断后为0")
        if quantity != intent.quantity or price != intent.price:
            logger.debug(f"{intent.pair} 下单意图按精度截断: qty {intent.quantity} -> {quantity}, "
                         f"price {intent.price} -> {price}")
            intent = dataclasses.replace(intent, quantity=quantity, price=price)
        return pair, intent

    def required_reservation(self, intent: OrderIntent, pair: TradingPair) -> Tuple[str, Decimal]:
        """
        返回 (冻结币种, 冻结金额)

        现货: 卖单冻结基础币数量，限价买单冻结 数量 x 限价，市价买单按标记价加预留比例冻结计价币。
        永续: 冻结计价币，开仓部分按 名义价值 / 杠杆 计保证金，另加 taker 手续费估算；
             可平掉的反向持仓(扣除同方向挂单后)不需要保证金。
        """
        if pair.is_swap:
            return pair.quote, self._swap_reservation(intent, pair)
        if intent.side == OrderSide.SELL:
            return pair.base, intent.quantity
        if intent.order_type == OrderType.LimitOrder:
            return pair.quote, intent.quantity * intent.price
        return pair.quote, pair.quantize_amount(intent.quantity * pair.mark_price * (1 + self.market_order_buffer))

    def _swap_reservation(self, intent: OrderIntent, pair: TradingPair) -> Decimal:
        held = self.asset_manager.position(pair.symbol).quantity
        direction = 1 if intent.side == OrderSide.BUY else -1
        closable = ZERO
        if held * direction < 0:
            pending = sum((o.remaining for o in self.active_orders(pair.symbol) if o.side == intent.side), ZERO)
            closable = max(ZERO, abs(held) - pending)
        opening = max(ZERO, intent.quantity - closable)
        if intent.order_type == OrderType.LimitOrder:
            ref_price = intent.price
        else:
            ref_price = pair.mark_price * (1 + self.market_order_buffer)
        fee = self.fee_model.quote_fee(ref_price, intent.quantity, LiquidityType.TAKER)
        return pair.quantize_amount(opening * ref_price / pair.leverage + fee)

    def calculate_fee(self, pair: TradingPair, side: OrderSide, price: Decimal, quantity: Decimal,
                      liquidity: LiquidityType) -> Decimal:
        """
        按交易对精度计算手续费(向上取整)

        现货以收入币种计，永续以计价币计
        """
        if pair.is_swap:
            return pair.quantize_amount(self.fee_model.quote_fee(price, quantity, liquidity))
        fee = self.fee_model.calculate(side, price, quantity, liquidity)
        if side == OrderSide.BUY:
            return min(decimal_quantize(fee, pair.quantity_precision, 1), quantity)
        return min(pair.quantize_amount(fee), price * quantity)

    def submit(self, intent: OrderIntent, timestamp: int) -> int:
        """
        校验意图、冻结资金并创建订单

        返回:
            新订单ID

        异常:
            ValidationError: 参数不合法
            InsufficientBalanceError: 可用余额不足
        """
        pair, intent = self._validate(intent)
        currency, amount = self.required_reservation(intent, pair)
        order_id = self.id_generator.peek()
        self.asset_manager.try_reserve(currency, amount, order_id, timestamp)
        order_id = self.id_generator.next_id()
        self._seq += 1
        order = Order(order_id=order_id, pair=intent.pair, side=intent.side, order_type=intent.order_type,
                      price=intent.price, quantity=intent.quantity, reserve_currency=currency,
                      reserved_amount=amount, created_at=timestamp, seq=self._seq, tag=intent.tag)
        self._active.setdefault(order.pair, {})[order_id] = order
        self._index[order_id] = order
        logger.debug(f"新建订单: {order}")
        self._publish(EventType.ORDER_CREATED, order)
        return order_id

    def _active_order(self, order_id: int) -> Order:
        order = self._index.get(order_id)
        if order is not None:
            return order
        if order_id in self._archived:
            archived = self._archived[order_id]
            raise InvalidStateError(f"订单{order_id}已处于终态 {archived.status.name}")
        raise OrderNotFoundError(order_id)

    def cancel(self, order_id: int, timestamp: int, reason: str = None) -> Order:
        """
        撤单并释放剩余冻结

        异常:
            OrderNotFoundError: 订单不存在
            InvalidStateError: 订单已成交或已撤销
        """
        order = self._active_order(order_id)
        self.asset_manager.release(order.reserve_currency, order.reserved_amount, order_id, timestamp)
        order.reserved_amount = ZERO
        order.mark_canceled(timestamp, reason)
        self._archive(order)
        logger.debug(f"撤单: {order}, 原因: {reason}")
        self._publish(EventType.ORDER_UPDATED, order)
        return order

    def cancel_all(self, pair: str = None, timestamp: int = None, reason: str = None) -> List[Order]:
        return [self.cancel(order.order_id, timestamp, reason) for order in self.active_orders(pair)]

    def _archive(self, order: Order):
        del self._active[order.pair][order.order_id]
        del self._index[order.order_id]
        self._archived[order.order_id] = order

    # ------------------------------------------------------------------ 撮合
    def _fill_price(self, order: Order, bar: KLine) -> Decimal:
        if order.order_type == OrderType.MarketOrder:
            return bar.open
        if self.fill_price_policy == FillPricePolicy.OPEN_IF_GAPPED:
            if order.side == OrderSide.BUY and bar.open < order.price:
                return bar.open
            if order.side == OrderSide.SELL and bar.open > order.price:
                return bar.open
        return order.price

    @staticmethod
    def _eligible(order: Order, bar: KLine) -> bool:
        if order.order_type == OrderType.MarketOrder:
            return True
        if order.side == OrderSide.BUY:
            return bar.low <= order.price
        return bar.high >= order.price

    @staticmethod
    def _priority(order: Order):
        # 市价单优先，其次价格优先(买高卖低)，同价按提交顺序
        if order.order_type == OrderType.MarketOrder:
            return 0, ZERO, order.seq
        price = -order.price if order.side == OrderSide.BUY else order.price
        return 1, price, order.seq

    def match(self, pair: str, bar: KLine) -> List[Fill]:
        """
        用一根K线撮合该交易对的活动订单，先买后卖

        返回:
            按撮合顺序排列的成交
        """
        orders = self.active_orders(pair)
        if not orders:
            return []
        trading_pair = self.pairs[pair]
        capacity = bar.volume * self.volume_fill_ratio if self.volume_fill_ratio is not None else None
        fills = []
        for side in (OrderSide.BUY, OrderSide.SELL):
            eligible = sorted((o for o in orders if o.side == side and self._eligible(o, bar)), key=self._priority)
            for order in eligible:
                if capacity is not None:
                    quantity = trading_pair.quantize_quantity(min(order.remaining, capacity))
                    if quantity <= 0:
                        break
                else:
                    quantity = order.remaining
                price = self._fill_price(order, bar)
                spot_buy = order.side == OrderSide.BUY and not trading_pair.is_swap
                if spot_buy and quantity * price > order.reserved_amount:
                    logger.warning(f"市价买单{order.order_id}成交额 {quantity * price} 超过冻结 {order.reserved_amount}, 撤单")
                    self.cancel(order.order_id, bar.end_time, reason="成交额超过冻结金额")
                    continue
                liquidity = LiquidityType.TAKER if order.order_type == OrderType.MarketOrder else LiquidityType.MAKER
                fee = self.calculate_fee(trading_pair, order.side, price, quantity, liquidity)
                fills.append(self._settle(order, price, quantity, fee, bar.end_time, liquidity))
                if capacity is not None:
                    capacity -= quantity
        return fills

    def _settle(self, order: Order, price: Decimal, quantity: Decimal, fee: Decimal, timestamp: int,
                liquidity: LiquidityType) -> Fill:
        pair = self.pairs[order.pair]
        self.asset_manager.apply_fill(order, price, quantity, fee, timestamp)
        order.record_fill(price, quantity, fee, timestamp)
        fee_currency = pair.base if order.side == OrderSide.BUY and not pair.is_swap else pair.quote
        fill = Fill(order_id=order.order_id, pair=order.pair, side=order.side, price=price, quantity=quantity,
                    fee=fee, fee_currency=fee_currency, timestamp=timestamp, liquidity=liquidity)
        if order.status.is_finished:
            self._archive(order)
        logger.debug(f"成交: {fill}")
        self._publish(EventType.ORDER_FILLED, order, fill)
        return fill

    def apply_external_fill(self, order_id: int, price: Decimal, quantity: Decimal, fee: Optional[Decimal],
                            timestamp: int, liquidity: LiquidityType = LiquidityType.MAKER) -> Fill:
        """
        处理交易所回报的成交，结算方式与回测撮合一致

        fee 为 None 时按费率模型计算；现货市价买单成交额超过冻结时，从可用余额补冻差额
        """
        order = self._active_order(order_id)
        if not isinstance(price, Decimal) or price <= 0:
            raise ValidationError(f"成交价格必须为正: {price}")
        if not isinstance(quantity, Decimal) or quantity <= 0 or quantity > order.remaining:
            raise ValidationError(f"订单{order_id}成交数量非法: {quantity}, 剩余 {order.remaining}")
        pair = self.pairs[order.pair]
        if fee is None:
            fee = self.calculate_fee(pair, order.side, price, quantity, liquidity)
        if fee < 0:
            raise ValidationError(f"手续费不能为负: {fee}")
        if not pair.is_swap and order.side == OrderSide.BUY and quantity * price > order.reserved_amount:
            extra = quantity * price - order.reserved_amount
            logger.warning(f"订单{order_id}实际成交额超过冻结, 补冻 {extra} {order.reserve_currency}")
            self.asset_manager.reserve(order.reserve_currency, extra, order_id, timestamp)
            order.reserved_amount += extra
        return self._settle(order, price, quantity, fee, timestamp, liquidity)
