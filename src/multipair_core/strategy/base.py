#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
策略基础模块，定义回测与实盘共用的策略接口。
"""

from abc import ABC, abstractmethod
from typing import List, Union

from multipair_core.base import Component
from multipair_core.models import (
    CancelIntent,
    Field,
    FillEvent,
    FundingSettlementEvent,
    MarketSnapshot,
    OrderIntent,
    Rejection,
)
from multipair_core.utils import get_logger

logger = get_logger(__name__)

Intent = Union[OrderIntent, CancelIntent]


class Strategy(Component, ABC):
    """
    策略抽象基类

    策略只读取快照/事件并返回意图列表，不直接修改账户或订单。
    返回的意图由运行器按顺序路由，被拒绝的意图通过 on_rejected 通知。

    类属性:
        display_name: 策略展示名称
        init_params: 参数声明，配置加载时按声明转换类型
    """

    display_name: str = "未命名策略"
    init_params: List[Field] = []

    @abstractmethod
    def on_tick(self, snapshot: MarketSnapshot) -> List[Intent]:
        """
        每个行情事件处理完成后调用

        参数:
            snapshot: 当前账户与行情快照
        返回:
            下单/撤单意图
        """
        pass

    def on_fill(self, event: FillEvent) -> List[Intent]:
        """
        订单成交后调用
        """
        return []

    def on_funding(self, event: FundingSettlementEvent) -> List[Intent]:
        """
        资金费结算后调用
        """
        return []

    def on_rejected(self, rejection: Rejection):
        """
        意图被拒绝时调用
        """
        logger.debug(f"{self.display_name} 意图被拒绝: {rejection.error_type} {rejection.reason}")
