#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
交易记录器：成交日志、权益曲线、拒单与资金事件，支持导出为 pandas DataFrame 和 CSV
"""
import os
from decimal import Decimal
from typing import Any, Dict, List, Tuple

import pandas as pd

from multipair_core.event import Event, EventBus, EventType
from multipair_core.models import DataGap, Fill, FundingSettlementEvent, LiquidationEvent, Rejection
from multipair_core.utils import get_logger

logger = get_logger(__name__)

TRADE_COLUMNS = ["timestamp", "pair", "side", "price", "quantity", "fee", "fee_currency", "order_id", "liquidity",
                 "base_currency", "base_balance", "quote_currency", "quote_balance"]
EQUITY_COLUMNS = ["timestamp", "equity"]


class TradeRecorder:
    """
    只追加的交易与权益记录

    权益曲线每个时间戳保留一个点，同一时间戳的后续记录覆盖前值。
    """

    def __init__(self, event_bus: EventBus = None):
        self.trades: List[Dict[str, Any]] = []
        self.equity_curve: List[Tuple[int, Decimal]] = []
        self.rejections: List[Rejection] = []
        self.gaps: List[DataGap] = []
        self.fundings: List[FundingSettlementEvent] = []
        self.liquidations: List[LiquidationEvent] = []
        self.transaction_count = 0
        self.finalized = False
        if event_bus is not None:
            event_bus.subscribe_event(None, self.on_event)

    def on_event(self, event: Event):
        if event.event_type == EventType.TRANSACTION:
            self.transaction_count += 1
        elif event.event_type == EventType.ORDER_REJECTED:
            self.rejections.append(event.data)
        elif event.event_type == EventType.DATA_GAP:
            self.gaps.append(event.data)
        elif event.event_type == EventType.FUNDING_SETTLED:
            self.fundings.append(event.data)
        elif event.event_type == EventType.LIQUIDATION:
            self.liquidations.append(event.data)

    def record_fill(self, fill: Fill, base_currency: str, base_balance: Decimal, quote_currency: str,
                    quote_balance: Decimal):
        if self.trades and fill.timestamp < self.trades[-1]["timestamp"]:
            logger.error(f"成交时间倒序: {fill.timestamp} < {self.trades[-1]['timestamp']}")
        self.trades.append({
            "timestamp": fill.timestamp,
            "pair": fill.pair,
            "side": fill.side.name,
            "price": fill.price,
            "quantity": fill.quantity,
            "fee": fill.fee,
            "fee_currency": fill.fee_currency,
            "order_id": fill.order_id,
            "liquidity": fill.liquidity.value,
            "base_currency": base_currency,
            "base_balance": base_balance,
            "quote_currency": quote_currency,
            "quote_balance": quote_balance,
        })

    def record_equity(self, timestamp: int, equity: Decimal):
        if self.equity_curve and self.equity_curve[-1][0] == timestamp:
            self.equity_curve[-1] = (timestamp, equity)
        else:
            self.equity_curve.append((timestamp, equity))

    def finalize(self):
        self.finalized = True
        logger.info(f"记录完成: 成交 {len(self.trades)} 笔, 权益点 {len(self.equity_curve)} 个, "
                    f"拒单 {len(self.rejections)} 次, 流水 {self.transaction_count} 条")

    def to_frames(self) -> Tuple[pd.DataFrame, pd.DataFrame]:
        """
        返回 (成交日志, 权益曲线)，Decimal 保留为字符串以保证精度，强平成交的空 order_id 输出为空字符串
        """
        trades = pd.DataFrame(
            [{k: self._cell(v) for k, v in row.items()} for row in self.trades],
            columns=TRADE_COLUMNS)
        equity = pd.DataFrame([(ts, str(value)) for ts, value in self.equity_curve], columns=EQUITY_COLUMNS)
        return trades, equity

    @staticmethod
    def _cell(value):
        if value is None:
            return ""
        return str(value) if isinstance(value, Decimal) else value

    def save(self, directory: str) -> Dict[str, str]:
        """写出 trades.csv 与 equity.csv"""
        os.makedirs(directory, exist_ok=True)
        trades, equity = self.to_frames()
        paths = {
            "trades": os.path.join(directory, "trades.csv"),
            "equity": os.path.join(directory, "equity.csv"),
        }
        trades.to_csv(paths["trades"], index=False, lineterminator="\n")
        equity.to_csv(paths["equity"], index=False, lineterminator="\n")
        logger.info(f"结果已保存: {paths}")
        return paths
