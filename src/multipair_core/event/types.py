#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
事件定义
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class EventType(Enum):
    """
    事件类型定义
    """
    # 数据事件
    DATA_GAP = "data_gap"  # K线缺口

    # 订单事件
    ORDER_CREATED = "order_created"  # 订单创建
    ORDER_UPDATED = "order_updated"  # 订单状态变化(撤单/部分成交)
    ORDER_FILLED = "order_filled"  # 订单成交
    ORDER_REJECTED = "order_rejected"  # 意图被拒绝

    # 资金事件
    TRANSACTION = "transaction"  # 资金流水
    FUNDING_SETTLED = "funding_settled"  # 资金费结算
    LIQUIDATION = "liquidation"  # 强平

    # 运行器事件
    RUNNER_PHASE = "runner_phase"  # 运行阶段变化


@dataclass
class EventSource:
    """
    事件源
    """
    instance_id: str
    name: str
    cls: str = None
    extra: dict = field(default_factory=dict)

    @classmethod
    def of(cls, instance: Any) -> "EventSource":
        return cls(instance_id=str(id(instance)), name=instance.__class__.__name__,
                   cls=f"{instance.__class__.__module__}|{instance.__class__.__name__}")


class Event:
    """
    事件对象
    """

    def __init__(self, event_type: EventType, data: Any = None, source: EventSource = None):
        """
        初始化事件

        参数:
            event_type: 事件类型
            data: 事件数据
            source: 事件源
        """
        self.event_type = event_type
        self.data = data
        self.source = source

    def __str__(self):
        return f"Event(type={self.event_type.value}, source={self.source}, data={self.data})"
