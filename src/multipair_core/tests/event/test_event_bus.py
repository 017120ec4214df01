#!/usr/bin/env python
# -*- coding: utf-8 -*-

import unittest

from multipair_core.event import Event, EventBus, EventSource, EventType


class TestEventBus(unittest.TestCase):
    """
    测试同步事件总线
    """

    def setUp(self):
        self.bus = EventBus()
        self.received = []

    def test_subscribe_and_publish(self):
        """测试基本的订阅和发布功能，回调在发布者线程内同步执行"""
        self.bus.subscribe_event(EventType.TRANSACTION, lambda e: self.received.append(e.data))
        self.bus.publish_event(Event(EventType.TRANSACTION, "tx"))
        self.assertEqual(self.received, ["tx"])

    def test_type_filter(self):
        """测试只收到订阅类型的事件"""
        self.bus.subscribe_event(EventType.ORDER_FILLED, lambda e: self.received.append(e.event_type))
        self.bus.publish_event(Event(EventType.ORDER_CREATED, None))
        self.bus.publish_event(Event(EventType.ORDER_FILLED, None))
        self.assertEqual(self.received, [EventType.ORDER_FILLED])

    def test_subscribe_all(self):
        """测试订阅全部事件，具体类型订阅者先于全局订阅者"""
        self.bus.subscribe_event(None, lambda e: self.received.append(("all", e.event_type)))
        self.bus.subscribe_event(EventType.DATA_GAP, lambda e: self.received.append(("gap", e.event_type)))
        self.bus.publish_event(Event(EventType.DATA_GAP, None))
        self.bus.publish_event(Event(EventType.LIQUIDATION, None))
        self.assertEqual(self.received, [("gap", EventType.DATA_GAP), ("all", EventType.DATA_GAP),
                                         ("all", EventType.LIQUIDATION)])

    def test_order_and_duplicate(self):
        """测试按订阅顺序回调，重复订阅只生效一次"""

        def first(e):
            self.received.append(1)

        def second(e):
            self.received.append(2)

        self.bus.subscribe_event(EventType.TRANSACTION, first)
        self.bus.subscribe_event(EventType.TRANSACTION, second)
        self.bus.subscribe_event(EventType.TRANSACTION, first)
        self.bus.publish_event(Event(EventType.TRANSACTION))
        self.assertEqual(self.received, [1, 2])

    def test_unsubscribe(self):
        def callback(e):
            self.received.append(e)

        self.bus.subscribe_event(EventType.TRANSACTION, callback)
        self.assertTrue(self.bus.unsubscribe_event(EventType.TRANSACTION, callback))
        self.assertFalse(self.bus.unsubscribe_event(EventType.TRANSACTION, callback))
        self.bus.publish_event(Event(EventType.TRANSACTION))
        self.assertEqual(self.received, [])

    def test_subscriber_error_propagates(self):
        """测试订阅者异常传播给发布者"""

        def broken(e):
            raise RuntimeError("boom")

        self.bus.subscribe_event(EventType.TRANSACTION, broken)
        with self.assertRaises(RuntimeError):
            self.bus.publish_event(Event(EventType.TRANSACTION))

    def test_clear(self):
        self.bus.subscribe_event(None, lambda e: self.received.append(e))
        self.bus.clear()
        self.bus.publish_event(Event(EventType.TRANSACTION))
        self.assertEqual(self.received, [])

    def test_event_source(self):
        source = EventSource.of(self.bus)
        self.assertEqual(source.name, "EventBus")
        self.assertEqual(source.cls, "multipair_core.event.bus|EventBus")
        self.assertIn("transaction", str(Event(EventType.TRANSACTION, 1, source)))


if __name__ == "__main__":
    unittest.main()
