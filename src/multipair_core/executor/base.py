#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
交易所适配器抽象基类
"""
from abc import ABC, abstractmethod
from typing import Any, Callable, Optional

from multipair_core.base import Component
from multipair_core.models import FillReport, Order
from multipair_core.utils import get_logger

logger = get_logger(__name__)


class ExchangeAdapter(Component, ABC):
    """
    交易所适配器抽象基类

    实盘运行器通过 send_order/cancel_order 转发订单，
    适配器通过回调把成交回报(FillReport)送回运行器。
    """

    def __init__(self):
        self.callback: Optional[Callable[[FillReport], None]] = None

    def set_callback(self, callback: Callable[[FillReport], None]):
        self.callback = callback

    @abstractmethod
    def send_order(self, order: Order):
        """
        下单

        参数:
            order: 订单信息(副本)
        """
        raise NotImplementedError()

    @abstractmethod
    def cancel_order(self, order_id: int, pair: str):
        """
        撤单
        :param order_id: 订单ID
        :param pair: 交易对
        """
        raise NotImplementedError()

    def on_market_data(self, data: Any):
        """
        收到运行器处理完的行情，真实交易所适配器无需处理
        """
        ...

    def _fill_callback(self, report: FillReport):
        """
        成交回调
        """
        if self.callback:
            self.callback(report)
        else:
            logger.warning(f"成交回报没有接收方: {report}")
