#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
CSV 文件数据源

K线文件列: start_time, [end_time], open, high, low, close, volume
资金费率文件列: timestamp, rate
时间列可以是毫秒时间戳或 "YYYY-MM-DD HH:MM:SS" 格式(UTC)
"""
import os
from typing import Any, Dict, Iterator

import pandas as pd

from multipair_core.models import DataType, Field, FieldType, TimeFrame
from multipair_core.utils import DateTimeUtils, get_logger

from .base import DataSource

logger = get_logger(__name__)


class CsvDataSource(DataSource):
    """
    从目录读取 CSV，文件名由模板生成，数值列按字符串读取以保留精度
    """
    supported_data_types = (DataType.KLINE, DataType.FUNDING_RATE)
    display_name = "CSV数据源"
    init_params = [
        Field(name="data_dir", label="数据目录", type=FieldType.STRING, required=True),
        Field(name="kline_pattern", label="K线文件名模板", type=FieldType.STRING,
              default="{pair}_{timeframe}.csv"),
        Field(name="funding_pattern", label="资金费率文件名模板", type=FieldType.STRING,
              default="{pair}_funding.csv"),
    ]

    def __init__(self, data_dir: str, kline_pattern: str = "{pair}_{timeframe}.csv",
                 funding_pattern: str = "{pair}_funding.csv"):
        super().__init__()
        self.data_dir = data_dir
        self.kline_pattern = kline_pattern
        self.funding_pattern = funding_pattern

    def _path(self, pair: str, data_type: DataType, timeframe: TimeFrame = None) -> str:
        pattern = self.kline_pattern if data_type == DataType.KLINE else self.funding_pattern
        return os.path.join(self.data_dir, pattern.format(pair=pair, timeframe=timeframe.value if timeframe else ""))

    def get_history_data(self, pair: str, data_type: DataType = DataType.KLINE, timeframe: TimeFrame = None,
                         start_time: int = None, end_time: int = None) -> Iterator[Any]:
        path = self._path(pair, data_type, timeframe)
        if data_type == DataType.FUNDING_RATE and not os.path.exists(path):
            logger.warning(f"{pair} 资金费率文件不存在: {path}")
            return
        logger.info(f"读取CSV: {path}")
        df = pd.read_csv(path, dtype=str, keep_default_na=False)
        time_column = "start_time" if data_type == DataType.KLINE else "timestamp"
        for row in df.to_dict("records"):
            record = self._normalize(row)
            ts = record.get(time_column)
            if isinstance(ts, int) and not self.in_range(ts, start_time, end_time):
                continue
            yield record

    @staticmethod
    def _normalize(row: Dict[str, str]) -> Dict[str, Any]:
        """去掉空值，时间列转换为毫秒时间戳"""
        record = {}
        for key, value in row.items():
            key = key.strip()
            value = value.strip() if isinstance(value, str) else value
            if value == "" or value is None:
                continue
            if key in ("start_time", "end_time", "timestamp"):
                value = int(value) if value.isdigit() else DateTimeUtils.to_timestamp(value)
            record[key] = value
        return record
