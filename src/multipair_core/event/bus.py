#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
同步事件总线：发布者线程内按订阅顺序依次回调，保证回放确定性。
"""
from typing import Callable, Dict, List

from multipair_core.utils import get_logger

from .types import Event, EventType

logger = get_logger(__name__)


class EventBus:
    """串行事件总线，负责事件分发"""

    def __init__(self):
        self._subscribers: Dict[EventType, List[Callable]] = {}
        self._all_event_subscribers: List[Callable] = []

    def subscribe_event(self, event_type: EventType, callback: Callable) -> bool:
        """
        订阅事件。如果 event_type 为空，则订阅所有事件。

        参数:
            event_type: 事件类型（为 None 表示订阅全部事件）
            callback: 回调函数

        返回:
            是否成功订阅
        """
        subscribers = self._all_event_subscribers if not event_type \
            else self._subscribers.setdefault(event_type, [])
        if callback in subscribers:
            logger.debug(f"回调函数已经订阅了事件类型 {event_type}: {id(callback)}")
            return True
        subscribers.append(callback)
        return True

    def unsubscribe_event(self, event_type: EventType, callback: Callable) -> bool:
        """
        取消订阅

        返回:
            是否存在并移除了该订阅
        """
        subscribers = self._all_event_subscribers if not event_type \
            else self._subscribers.get(event_type, [])
        if callback in subscribers:
            subscribers.remove(callback)
            return True
        return False

    def publish_event(self, event: Event):
        """
        发布事件，依次分发给具体类型订阅者和全局订阅者。
        订阅者抛出的异常向发布者传播。
        """
        for subscriber in list(self._subscribers.get(event.event_type, [])):
            subscriber(event)
        for subscriber in list(self._all_event_subscribers):
            subscriber(event)

    def clear(self):
        self._subscribers.clear()
        self._all_event_subscribers.clear()
