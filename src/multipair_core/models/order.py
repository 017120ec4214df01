#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
订单模型定义
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from multipair_core.errors import InvariantViolation
from multipair_core.utils import to_decimal

from .constants import LiquidityType, OrderSide, OrderStatus, OrderType


@dataclass
class OrderIntent:
    """
    策略发出的下单意图，由订单管理器校验、冻结资金后转换为 Order

    字段说明：
        pair:        交易对，如 "BTC-USDT"
        side:        买卖方向
        order_type:  限价/市价
        quantity:    下单数量（基础币）
        price:       限价，市价单必须为 None
        tag:         策略自定义标记，原样回传到订单上
    """
    pair: str
    side: OrderSide
    order_type: OrderType
    quantity: Decimal
    price: Optional[Decimal] = None
    tag: str = None

    def __post_init__(self):
        if isinstance(self.side, str):
            self.side = OrderSide(self.side.lower())
        if isinstance(self.order_type, int):
            self.order_type = OrderType(self.order_type)
        elif isinstance(self.order_type, str):
            self.order_type = OrderType[self.order_type]
        if self.quantity is not None and not isinstance(self.quantity, Decimal):
            self.quantity = to_decimal(self.quantity, "quantity")
        if self.price is not None and not isinstance(self.price, Decimal):
            self.price = to_decimal(self.price, "price")

    @classmethod
    def limit(cls, pair: str, side: OrderSide, quantity, price, tag: str = None) -> "OrderIntent":
        return cls(pair=pair, side=side, order_type=OrderType.LimitOrder, quantity=quantity, price=price, tag=tag)

    @classmethod
    def market(cls, pair: str, side: OrderSide, quantity, tag: str = None) -> "OrderIntent":
        return cls(pair=pair, side=side, order_type=OrderType.MarketOrder, quantity=quantity, tag=tag)


@dataclass(frozen=True)
class CancelIntent:
    """撤单意图"""
    order_id: int


@dataclass
class Order:
    """
    订单数据结构，由订单管理器持有，进入终态后归档。

    状态只允许单向流转：PENDING -> PARTIALLY_FILLED* -> FILLED，
    或 PENDING/PARTIALLY_FILLED -> CANCELED。

    字段说明：
        order_id:          订单ID，单次运行内递增且不复用
        pair:              交易对
        side:              买卖方向
        order_type:        订单类型
        price:             限价，市价单为 None
        quantity:          下单数量（基础币）
        filled_quantity:   已成交数量
        status:            订单状态
        created_at:        创建时间（毫秒）
        filled_at:         完全成交时间
        canceled_at:       撤单时间
        reserve_currency:  冻结资金的币种（买单为计价币，卖单为基础币）
        reserved_amount:   剩余冻结金额
        seq:               提交序号，同价位按提交先后撮合
        tag:               策略标记
        avg_price:         成交均价
        fee:               累计手续费（收入币种计）
        cancel_reason:     撤单原因
    """
    order_id: int
    pair: str
    side: OrderSide
    order_type: OrderType
    price: Optional[Decimal]
    quantity: Decimal
    reserve_currency: str
    reserved_amount: Decimal
    created_at: int
    seq: int
    filled_quantity: Decimal = Decimal(0)
    status: OrderStatus = OrderStatus.PENDING
    filled_at: Optional[int] = None
    canceled_at: Optional[int] = None
    tag: str = None
    avg_price: Optional[Decimal] = None
    fee: Decimal = Decimal(0)
    cancel_reason: str = None

    @property
    def remaining(self) -> Decimal:
        return self.quantity - self.filled_quantity

    @property
    def is_active(self) -> bool:
        return not self.status.is_finished

    def record_fill(self, price: Decimal, quantity: Decimal, fee: Decimal, timestamp: int):
        """
        登记一笔成交，更新成交量、均价和状态
        """
        if not self.is_active:
            raise InvariantViolation(f"订单{self.order_id}已处于终态{self.status.name}，不能再成交")
        if quantity <= 0 or quantity > self.remaining:
            raise InvariantViolation(f"订单{self.order_id}成交数量非法: {quantity}, 剩余 {self.remaining}")
        notional = (self.avg_price or Decimal(0)) * self.filled_quantity + price * quantity
        self.filled_quantity += quantity
        self.avg_price = notional / self.filled_quantity
        self.fee += fee
        if self.filled_quantity == self.quantity:
            self.status = OrderStatus.FILLED
            self.filled_at = timestamp
        else:
            self.status = OrderStatus.PARTIALLY_FILLED

    def mark_canceled(self, timestamp: int, reason: str = None):
        if not self.is_active:
            raise InvariantViolation(f"订单{self.order_id}已处于终态{self.status.name}，不能撤单")
        self.status = OrderStatus.CANCELED
        self.canceled_at = timestamp
        self.cancel_reason = reason

    def __str__(self):
        return (f"Order(id={self.order_id}, {self.pair} {self.side.name} {self.order_type.name} "
                f"qty={self.quantity} price={self.price} filled={self.filled_quantity} status={self.status.name})")


@dataclass(frozen=True)
class Fill:
    """
    成交记录（只追加）

    fee 以收入币种计：买单为基础币，卖单为计价币
    强平成交没有对应订单，order_id 为 None
    """
    order_id: Optional[int]
    pair: str
    side: OrderSide
    price: Decimal
    quantity: Decimal
    fee: Decimal
    fee_currency: str
    timestamp: int
    liquidity: LiquidityType

    @property
    def notional(self) -> Decimal:
        return self.price * self.quantity


@dataclass
class FillReport:
    """
    实盘交易所回报的成交，fee 为 None 时按本地费率模型计算
    """
    order_id: int
    price: Decimal
    quantity: Decimal
    timestamp: int
    fee: Optional[Decimal] = None
    liquidity: LiquidityType = LiquidityType.MAKER

    def __post_init__(self):
        self.price = to_decimal(self.price, "price")
        self.quantity = to_decimal(self.quantity, "quantity")
        if self.fee is not None:
            self.fee = to_decimal(self.fee, "fee")
