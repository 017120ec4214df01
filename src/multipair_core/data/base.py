#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
历史行情数据源抽象定义。
"""
from abc import ABC, abstractmethod
from typing import Any, Iterator, List

from multipair_core.base import Component
from multipair_core.models import DataType, Field, TimeFrame


class DataSource(Component, ABC):
    """
    所有数据源的抽象基类。

    get_history_data 按时间升序返回记录，记录可以是模型对象(KLine/FundingRate)，
    也可以是字段同名的字典；字段校验由数据管理器统一完成。
    时间范围为左闭右开 [start_time, end_time)，K线按开盘时间、资金费率按结算时间判断。
    """
    # 声明支持的数据类型
    supported_data_types = (DataType.KLINE,)
    # 声明显示名称
    display_name = "数据源"

    @abstractmethod
    def get_history_data(self, pair: str, data_type: DataType = DataType.KLINE, timeframe: TimeFrame = None,
                         start_time: int = None, end_time: int = None) -> Iterator[Any]:
        """
        获取历史数据。

        参数:
            pair: 交易对
            data_type: 数据类型
            timeframe: K线粒度(仅K线)
            start_time: 开始时间(毫秒，含)
            end_time: 结束时间(毫秒，不含)

        返回:
            Iterator[Any]: 数据迭代器
        """
        pass

    def get_supported_parameters(self) -> List[Field]:
        return list(self.init_params)

    @staticmethod
    def in_range(ts: int, start_time: int = None, end_time: int = None) -> bool:
        if start_time is not None and ts < start_time:
            return False
        if end_time is not None and ts >= end_time:
            return False
        return True
