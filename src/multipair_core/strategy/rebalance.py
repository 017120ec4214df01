#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
仓位比例网格策略

维持基础币市值占权益的目标比例 r：
1. 首个行情事件时若实际比例偏离超过容忍度，用市价单调整到 r。
2. 以固定名义金额 N 向上挂卖单、向下挂买单，每一档成交后仓位恰好回到 r：
     卖出档位 P = (N + r*q) / (b*(1-r))
     买入档位 P = (r*q - N) / (b*(1-r))
   b/q 为逐档推演后的基础币/计价币持有量，挂单只在标记价 ±cut_off_percentage 范围内。
3. 任一网格订单成交后撤销剩余网格并按最新持仓重新生成。
4. 可选纠偏(drift check)：按固定间隔或按比例偏离阈值触发，撤网格、市价再平衡后重新挂单。
"""
from decimal import Decimal
from typing import List, Optional

from multipair_core.models import (
    CancelIntent,
    ChoiceType,
    DriftCheckMode,
    Field,
    FieldType,
    FillEvent,
    MarketSnapshot,
    OrderIntent,
    OrderSide,
    PairView,
    Rejection,
)
from multipair_core.utils import decimal_quantize, get_logger

from .base import Intent, Strategy

logger = get_logger(__name__)

TAG_LADDER = "ladder"
TAG_REBALANCE = "rebalance"


class RatioLadderStrategy(Strategy):
    """
    固定仓位比例网格策略
    """
    display_name = "仓位比例网格"
    init_params = [
        Field(name="pair", label="交易对", type=FieldType.STRING, required=True),
        Field(name="target_ratio", label="目标仓位比例", type=FieldType.FLOAT, default="0.5", min=0, max=1),
        Field(name="level_notional", label="每档名义金额", description="每档挂单的计价币金额",
              type=FieldType.FLOAT, default="100", min=0),
        Field(name="cut_off_percentage", label="挂单价格范围", description="只在标记价上下该比例内挂单",
              type=FieldType.FLOAT, default="0.05", min=0, max=1),
        Field(name="max_levels", label="单边最大档数", type=FieldType.INT, default=10, min=0),
        Field(name="rebalance_tolerance", label="再平衡容忍度", description="实际比例偏离目标超过该值时市价调整",
              type=FieldType.FLOAT, default="0.01", min=0, max=1),
        Field(name="drift_check_mode", label="纠偏方式", type=FieldType.RADIO, default="none",
              choices=[("none", "不纠偏"), ("interval", "固定间隔"), ("deviation", "比例偏离")],
              choice_type=ChoiceType.STRING),
        Field(name="drift_check_interval", label="纠偏间隔(毫秒)", type=FieldType.INT, default=0, min=0),
        Field(name="drift_threshold", label="纠偏偏离阈值", type=FieldType.FLOAT, default="0.05", min=0, max=1),
        Field(name="price_precision", label="价格精度", type=FieldType.INT, default=8, min=0),
        Field(name="qty_precision", label="数量精度", type=FieldType.INT, default=8, min=0),
    ]

    def __init__(self, pair: str, target_ratio: Decimal = Decimal("0.5"), level_notional: Decimal = Decimal("100"),
                 cut_off_percentage: Decimal = Decimal("0.05"), max_levels: int = 10,
                 rebalance_tolerance: Decimal = Decimal("0.01"), drift_check_mode: str = "none",
                 drift_check_interval: int = 0, drift_threshold: Decimal = Decimal("0.05"),
                 price_precision: int = 8, qty_precision: int = 8):
        self.pair = pair
        self.target_ratio = Decimal(target_ratio)
        self.level_notional = Decimal(level_notional)
        self.cut_off_percentage = Decimal(cut_off_percentage)
        self.max_levels = int(max_levels)
        self.rebalance_tolerance = Decimal(rebalance_tolerance)
        self.drift_check_mode = DriftCheckMode(drift_check_mode) if isinstance(drift_check_mode, str) \
            else drift_check_mode
        self.drift_check_interval = int(drift_check_interval)
        self.drift_threshold = Decimal(drift_threshold)
        self.price_precision = int(price_precision)
        self.qty_precision = int(qty_precision)
        if not 0 < self.target_ratio < 1:
            raise ValueError(f"目标仓位比例必须在(0, 1)之间: {self.target_ratio}")
        if self.level_notional <= 0:
            raise ValueError(f"每档名义金额必须为正: {self.level_notional}")
        if self.drift_check_mode == DriftCheckMode.INTERVAL and self.drift_check_interval <= 0:
            raise ValueError("固定间隔纠偏需要设置 drift_check_interval")

        self._started = False
        self._rebalance_pending = False
        self._needs_refresh = False
        self._last_drift_check: Optional[int] = None

    # ------------------------------------------------------------------ 回调
    def on_tick(self, snapshot: MarketSnapshot) -> List[Intent]:
        view = snapshot.pairs.get(self.pair)
        if view is None or view.mark_price is None:
            return []
        if self._rebalance_pending:
            if any(order.tag == TAG_REBALANCE for order in view.open_orders):
                return []
            # 再平衡订单未成交即被撤销(成交额超过冻结)
            self._rebalance_pending = False
            self._needs_refresh = True
        if not self._started:
            self._started = True
            self._last_drift_check = snapshot.timestamp
            return self._rebalance_or_ladder(snapshot, view)
        if self._needs_refresh or self._drift_triggered(snapshot.timestamp, view):
            self._needs_refresh = False
            self._last_drift_check = snapshot.timestamp
            return self._rebalance_or_ladder(snapshot, view)
        return []

    def on_fill(self, event: FillEvent) -> List[Intent]:
        order = event.order
        if order.pair != self.pair or order.tag not in (TAG_LADDER, TAG_REBALANCE):
            return []
        if order.tag == TAG_REBALANCE:
            if order.is_active:
                return []
            self._rebalance_pending = False
        view = event.snapshot.pair(self.pair)
        return self._cancel_ladder(view) + self._ladder(event.snapshot, view)

    def on_rejected(self, rejection: Rejection):
        super().on_rejected(rejection)
        intent = rejection.intent
        if isinstance(intent, OrderIntent) and intent.tag == TAG_REBALANCE:
            logger.warning(f"{self.pair} 再平衡订单被拒绝: {rejection.reason}")
            self._rebalance_pending = False
            self._needs_refresh = True

    # ------------------------------------------------------------------ 计算
    def _drift_triggered(self, timestamp: int, view: PairView) -> bool:
        if self.drift_check_mode == DriftCheckMode.INTERVAL:
            return timestamp - self._last_drift_check >= self.drift_check_interval
        if self.drift_check_mode == DriftCheckMode.DEVIATION:
            return abs(view.position_ratio - self.target_ratio) > self.drift_threshold
        return False

    def _rebalance_or_ladder(self, snapshot: MarketSnapshot, view: PairView) -> List[Intent]:
        intents = self._cancel_ladder(view)
        rebalance = self._rebalance_intent(snapshot, view)
        if rebalance is not None:
            self._rebalance_pending = True
            intents.append(rebalance)
        else:
            intents.extend(self._ladder(snapshot, view))
        return intents

    @staticmethod
    def _cancel_ladder(view: PairView) -> List[Intent]:
        return [CancelIntent(order.order_id) for order in view.open_orders if order.tag == TAG_LADDER]

    def _rebalance_intent(self, snapshot: MarketSnapshot, view: PairView) -> Optional[OrderIntent]:
        price = view.mark_price
        base = snapshot.total(view.base)
        quote = snapshot.total(view.quote)
        equity = base * price + quote
        if equity <= 0:
            return None
        diff = self.target_ratio * equity - base * price
        if abs(diff) / equity <= self.rebalance_tolerance:
            return None
        if diff > 0:
            quantity = min(diff / price, quote / (price * (1 + snapshot.market_order_buffer)))
            side = OrderSide.BUY
        else:
            quantity = min(-diff / price, base)
            side = OrderSide.SELL
        quantity = decimal_quantize(quantity, self.qty_precision, 2)
        if quantity <= 0:
            return None
        logger.info(f"{self.pair} 仓位比例 {base * price / equity:.4f} 偏离目标 {self.target_ratio}, "
                    f"市价{side.name} {quantity}")
        return OrderIntent.market(self.pair, side, quantity, tag=TAG_REBALANCE)

    def _ladder(self, snapshot: MarketSnapshot, view: PairView) -> List[Intent]:
        """按当前总持仓逐档推演网格挂单"""
        base = snapshot.total(view.base)
        quote = snapshot.total(view.quote)
        price = view.mark_price
        if base <= 0 or price is None:
            return []
        r = self.target_ratio
        n = self.level_notional
        upper = price * (1 + self.cut_off_percentage)
        lower = price * (1 - self.cut_off_percentage)
        intents = []

        b, q, sold = base, quote, Decimal(0)
        for _ in range(self.max_levels):
            if b <= 0:
                break
            level_price = decimal_quantize((n + r * q) / (b * (1 - r)), self.price_precision, 1)
            if level_price > upper:
                break
            quantity = decimal_quantize(n / level_price, self.qty_precision, 2)
            if quantity <= 0 or sold + quantity > base:
                break
            intents.append(OrderIntent.limit(self.pair, OrderSide.SELL, quantity, level_price, tag=TAG_LADDER))
            sold += quantity
            b -= quantity
            q += quantity * level_price

        b, q, spent = base, quote, Decimal(0)
        for _ in range(self.max_levels):
            raw_price = (r * q - n) / (b * (1 - r))
            if raw_price <= 0:
                break
            level_price = decimal_quantize(raw_price, self.price_precision, 2)
            if level_price <= 0 or level_price < lower:
                break
            quantity = decimal_quantize(n / level_price, self.qty_precision, 2)
            cost = quantity * level_price
            if quantity <= 0 or spent + cost > quote:
                break
            intents.append(OrderIntent.limit(self.pair, OrderSide.BUY, quantity, level_price, tag=TAG_LADDER))
            spent += cost
            b += quantity
            q -= cost
        logger.debug(f"{self.pair} 生成网格 {len(intents)} 档, 标记价 {price}")
        return intents

    def get_state(self):
        return {
            "started": self._started,
            "rebalance_pending": self._rebalance_pending,
            "last_drift_check": self._last_drift_check,
        }

    def load_state(self, state):
        self._started = state.get("started", False)
        self._rebalance_pending = state.get("rebalance_pending", False)
        self._last_drift_check = state.get("last_drift_check")
