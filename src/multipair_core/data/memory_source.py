#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
内存数据源，测试和脚本化回测使用
"""
from typing import Any, Dict, Iterator, List

from multipair_core.models import DataType, TimeFrame

from .base import DataSource


class InMemoryDataSource(DataSource):
    """
    直接持有按交易对分组的K线/资金费率记录
    """
    supported_data_types = (DataType.KLINE, DataType.FUNDING_RATE)
    display_name = "内存数据源"

    def __init__(self, klines: Dict[str, List[Any]] = None, funding_rates: Dict[str, List[Any]] = None):
        super().__init__()
        self.klines = klines or {}
        self.funding_rates = funding_rates or {}

    def add_klines(self, pair: str, rows: List[Any]):
        self.klines.setdefault(pair, []).extend(rows)

    def add_funding_rates(self, pair: str, rows: List[Any]):
        self.funding_rates.setdefault(pair, []).extend(rows)

    def get_history_data(self, pair: str, data_type: DataType = DataType.KLINE, timeframe: TimeFrame = None,
                         start_time: int = None, end_time: int = None) -> Iterator[Any]:
        if data_type == DataType.KLINE:
            if pair not in self.klines:
                raise KeyError(f"没有 {pair} 的K线数据")
            key = "start_time"
            rows = self.klines[pair]
        else:
            key = "timestamp"
            rows = self.funding_rates.get(pair, [])
        for row in rows:
            ts = row.get(key) if isinstance(row, dict) else getattr(row, key, None)
            # 缺少时间字段的行交给数据管理器报错
            if ts is None or not isinstance(ts, int) or self.in_range(ts, start_time, end_time):
                yield row
