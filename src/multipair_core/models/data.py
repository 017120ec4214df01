#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
行情数据模型：K线、资金费率、数据缺口及数据结束标记。
"""

from dataclasses import dataclass
from decimal import Decimal

from .constants import TimeFrame


@dataclass(frozen=True)
class KLine:
    """
    K线数据，事件时间取收盘时间 end_time

    属性:
        pair: 交易对
        timeframe: 时间粒度
        start_time: 开盘时间(毫秒)
        end_time: 收盘时间(毫秒)
        open/high/low/close: 价格
        volume: 成交量(基础币)
    """
    pair: str
    timeframe: TimeFrame
    start_time: int
    end_time: int
    open: Decimal
    high: Decimal
    low: Decimal
    close: Decimal
    volume: Decimal = Decimal(0)

    @property
    def timestamp(self) -> int:
        return self.end_time

    def __str__(self):
        return (f"KLine({self.pair} {self.timeframe.value} {self.start_time} "
                f"O={self.open} H={self.high} L={self.low} C={self.close} V={self.volume})")


@dataclass(frozen=True)
class FundingRate:
    """
    资金费率，rate > 0 多头向空头支付，rate < 0 空头向多头支付
    """
    pair: str
    timestamp: int
    rate: Decimal


@dataclass(frozen=True)
class DataGap:
    """
    K线缺口：after 与 before 两根K线之间缺失 missing_bars 根
    """
    pair: str
    after: int
    before: int
    missing_bars: int


class _EndOfData:
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self):
        return False

    def __repr__(self):
        return "END_OF_DATA"


END_OF_DATA = _EndOfData()
