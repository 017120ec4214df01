#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
常量模块，定义系统中使用的常量和枚举类型。
"""

from enum import Enum


# 时间粒度与毫秒的映射表
_MILLISECONDS_MAP = {
    "1m": 60 * 1000,
    "3m": 3 * 60 * 1000,
    "5m": 5 * 60 * 1000,
    "15m": 15 * 60 * 1000,
    "30m": 30 * 60 * 1000,
    "1H": 60 * 60 * 1000,
    "2H": 2 * 60 * 60 * 1000,
    "4H": 4 * 60 * 60 * 1000,
    "6H": 6 * 60 * 60 * 1000,
    "8H": 8 * 60 * 60 * 1000,
    "12H": 12 * 60 * 60 * 1000,
    "1D": 24 * 60 * 60 * 1000,
    "1W": 7 * 24 * 60 * 60 * 1000,
}


class TimeFrame(Enum):
    """
    K线时间粒度枚举
    """
    M1 = "1m"     # 1分钟
    M3 = "3m"     # 3分钟
    M5 = "5m"     # 5分钟
    M15 = "15m"   # 15分钟
    M30 = "30m"   # 30分钟
    H1 = "1H"     # 1小时
    H2 = "2H"     # 2小时
    H4 = "4H"     # 4小时
    H6 = "6H"     # 6小时
    H8 = "8H"     # 8小时
    H12 = "12H"   # 12小时
    D1 = "1D"     # 日线
    W1 = "1W"     # 周线

    @classmethod
    def from_string(cls, value: str) -> "TimeFrame":
        """从字符串创建TimeFrame对象"""
        try:
            return cls(value)
        except ValueError:
            raise ValueError(f"无效的时间粒度: {value}")

    @property
    def milliseconds(self) -> int:
        """返回时间粒度的毫秒表示"""
        return _MILLISECONDS_MAP[self.value]


class DataType(Enum):
    """处理的金融数据类型。"""
    KLINE = "kline"                # K线数据
    FUNDING_RATE = "funding_rate"  # 资金费率（永续）


class TradeInsType(Enum):
    """
    交易产品类型
    """
    SPOT = 1  # 现货
    SWAP = 3  # 永续合约


class OrderSide(Enum):
    """订单方向"""
    BUY = "buy"
    SELL = "sell"

    @property
    def opposite(self) -> "OrderSide":
        return OrderSide.SELL if self == OrderSide.BUY else OrderSide.BUY


class OrderType(Enum):
    """
    交易类型 OrderType
    """
    MarketOrder = 1  # 市价单
    LimitOrder = 2  # 限价单


class OrderStatus(Enum):
    """
    订单状态
    """
    PENDING = "pending"  # 挂单中
    PARTIALLY_FILLED = "partially_filled"  # 部分成交
    FILLED = "filled"  # 完全成交
    CANCELED = "canceled"  # 已撤单

    @property
    def is_finished(self) -> bool:
        return self in (OrderStatus.FILLED, OrderStatus.CANCELED)


class LiquidityType(Enum):
    """成交流动性角色"""
    MAKER = "maker"
    TAKER = "taker"


class FillPricePolicy(Enum):
    """
    限价单成交价规则
    LIMIT_PRICE: 一律按限价成交
    OPEN_IF_GAPPED: K线开盘价已越过限价时按开盘价成交(对下单方更优)，否则按限价
    """
    LIMIT_PRICE = "limit_price"
    OPEN_IF_GAPPED = "open_if_gapped"


class RunnerPhase(Enum):
    """运行器阶段"""
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    ABORTED = "aborted"

    @property
    def is_finished(self) -> bool:
        return self in (RunnerPhase.COMPLETED, RunnerPhase.ABORTED)


class DriftCheckMode(Enum):
    """再平衡策略的仓位纠偏触发方式"""
    NONE = "none"  # 不纠偏
    INTERVAL = "interval"  # 固定时间间隔
    DEVIATION = "deviation"  # 仓位比例偏离阈值
