#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
日期时间工具模块，处理时间戳与日期时间格式转换（统一使用UTC）。
"""

from datetime import datetime, timezone
from typing import Optional, Union


class DateTimeUtils:
    """日期时间工具类，所有转换均按UTC解释"""

    PATTERN_SECOND = '%Y-%m-%d %H:%M:%S'
    PATTERN_MINUTE = '%Y-%m-%d %H:%M'
    PATTERN_DATE = '%Y-%m-%d'
    PATTERN_YYYYMMDD = '%Y%m%d'

    @staticmethod
    def to_timestamp(value: Union[str, int, datetime]) -> int:
        """
        将日期时间字符串/datetime转换为毫秒时间戳，整数原样返回

        参数:
            value: 日期时间字符串(支持 YYYYMMDD / YYYY-MM-DD / YYYY-MM-DD HH:MM / YYYY-MM-DD HH:MM:SS)、datetime或毫秒时间戳

        返回:
            毫秒时间戳(int)
        """
        if isinstance(value, bool):
            raise ValueError(f"无法解析时间: {value!r}")
        if isinstance(value, int):
            return value
        if isinstance(value, datetime):
            return DateTimeUtils.datetime_to_timestamp(value)
        dt_str = str(value).strip()
        if dt_str.isdigit() and len(dt_str) > 8:
            return int(dt_str)
        patterns = {
            8: DateTimeUtils.PATTERN_YYYYMMDD,
            10: DateTimeUtils.PATTERN_DATE,
            16: DateTimeUtils.PATTERN_MINUTE,
            19: DateTimeUtils.PATTERN_SECOND,
        }
        pattern = patterns.get(len(dt_str))
        if pattern is None:
            raise ValueError(f"无法解析时间: {value!r}")
        dt = datetime.strptime(dt_str, pattern).replace(tzinfo=timezone.utc)
        return DateTimeUtils.datetime_to_timestamp(dt)

    @staticmethod
    def datetime_to_timestamp(dt: datetime) -> int:
        """naive datetime 视为UTC"""
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return int(dt.timestamp() * 1000)

    @staticmethod
    def to_datetime(ts: Optional[Union[int, float]]) -> Optional[datetime]:
        """
        将毫秒时间戳转换为UTC datetime对象

        参数:
            ts: 毫秒时间戳

        返回:
            datetime对象，如果输入为None则返回None
        """
        if ts is None:
            return None
        return datetime.fromtimestamp(ts / 1000, tz=timezone.utc)

    @staticmethod
    def to_date_str(ts: Optional[Union[int, float]], pattern: str = PATTERN_SECOND) -> str:
        if ts is None:
            return ""
        return DateTimeUtils.to_datetime(ts).strftime(pattern)

    @staticmethod
    def now_timestamp() -> int:
        """
        获取当前时间的毫秒时间戳
        """
        return int(datetime.now(tz=timezone.utc).timestamp() * 1000)
