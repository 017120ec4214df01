#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
实盘运行器：单消费者行情队列驱动，订单转发到交易所适配器，成交由适配器回报
"""
import itertools
from queue import Empty, PriorityQueue
from typing import Any, Dict, Optional

from multipair_core.base import create_component, load_class_from_str
from multipair_core.errors import InvalidStateError, OrderNotFoundError, ValidationError
from multipair_core.event import EventBus
from multipair_core.executor import ExchangeAdapter
from multipair_core.models import END_OF_DATA, FillReport, FundingRate, KLine, LiveConfig, Order
from multipair_core.strategy import Strategy
from multipair_core.utils import get_logger

from .base import Runner

logger = get_logger(__name__)


class LiveFeed:
    """
    实盘事件队列，线程安全，单消费者

    成交回报优先于行情出队，close() 放入的结束标记最后出队。
    """
    _FILL = 0
    _DATA = 1
    _CLOSE = 2

    def __init__(self):
        self._queue = PriorityQueue()
        self._seq = itertools.count()

    def put(self, item: Any):
        if isinstance(item, FillReport):
            priority = self._FILL
        elif item is END_OF_DATA:
            priority = self._CLOSE
        else:
            priority = self._DATA
        self._queue.put((priority, next(self._seq), item))

    def put_fill(self, report: FillReport):
        self.put(report)

    def close(self):
        self.put(END_OF_DATA)

    def get(self, timeout: Optional[float] = None) -> Any:
        """阻塞获取下一个事件，超时抛出 queue.Empty"""
        return self._queue.get(timeout=timeout)[2]

    def poll_fill(self) -> Optional[FillReport]:
        """队首为成交回报时取出，否则返回 None"""
        with self._queue.mutex:
            head = self._queue.queue[0] if self._queue.queue else None
        if head is None or head[0] != self._FILL:
            return None
        return self._queue.get_nowait()[2]

    def empty(self) -> bool:
        return self._queue.empty()


class LiveRunner(Runner):
    """
    实盘运行器

    K线只更新标记价并驱动 on_tick，不做本地撮合；成交回报按回测相同的方式结算，只触发 on_fill。
    """

    def __init__(self, config: LiveConfig, strategy: Strategy, adapter: ExchangeAdapter, feed: LiveFeed = None,
                 event_bus: EventBus = None):
        super().__init__(config, strategy, event_bus)
        self.adapter = adapter
        self.feed = feed or LiveFeed()
        self.adapter.set_callback(self.feed.put_fill)

    def prepare(self):
        self.adapter.on_start()

    def _run_loop(self):
        while True:
            if self._check_stop():
                return
            try:
                item = self.feed.get(timeout=self.config.poll_timeout)
            except Empty:
                continue
            if item is END_OF_DATA:
                logger.info("实盘行情队列已关闭")
                return
            if isinstance(item, FillReport):
                self.process_fill_report(item)
            elif isinstance(item, KLine):
                self.process_live_kline(item)
            elif isinstance(item, FundingRate):
                self.process_funding(item)
            else:
                logger.warning(f"无法识别的实盘事件: {item!r}")

    def process_live_kline(self, kline: KLine):
        self._advance_time(kline.timestamp)
        self.tracker.update_mark(kline.pair, kline.close, kline.timestamp)
        self._ensure_initial_equity()
        self.adapter.on_market_data(kline)
        while True:
            report = self.feed.poll_fill()
            if report is None:
                break
            self.process_fill_report(report)
        self._after_event(kline)

    def process_fill_report(self, report: FillReport):
        timestamp = report.timestamp if self.current_time is None else max(report.timestamp, self.current_time)
        try:
            fill = self.order_manager.apply_external_fill(report.order_id, report.price, report.quantity, report.fee,
                                                          timestamp, report.liquidity)
        except (OrderNotFoundError, InvalidStateError, ValidationError) as e:
            logger.error(f"成交回报无法处理: {report}, {e}")
            return
        self.current_time = timestamp
        self._handle_fill(fill)
        self._after_event(report, tick=False)

    def on_order_submitted(self, order: Order):
        self.adapter.send_order(order)

    def on_order_canceled(self, order: Order):
        self.adapter.cancel_order(order.order_id, order.pair)

    def on_stop(self):
        self.adapter.on_stop()


def create_live_runner(config: Dict[str, Any], feed: LiveFeed = None, event_bus: EventBus = None) -> LiveRunner:
    """
    按字典配置创建实盘运行器

    config 字段与 LiveConfig 一致，strategy_class/adapter_class 使用 "module|ClassName" 格式，
    adapter_config 作为适配器构造参数。返回的运行器尚未启动，调用方负责 run() 和向 feed 推送行情。
    """
    live_config = LiveConfig(**config)
    if live_config.strategy_class is None:
        raise ValueError("缺少 strategy_class 配置")
    if live_config.adapter_class is None:
        raise ValueError("缺少 adapter_class 配置")
    strategy = create_component(load_class_from_str(live_config.strategy_class), **live_config.strategy_params)
    adapter = create_component(load_class_from_str(live_config.adapter_class), **live_config.adapter_config)
    logger.info(f"创建实盘运行器: 策略 {live_config.strategy_class}, 交易所 {live_config.adapter_class}")
    return LiveRunner(live_config, strategy, adapter, feed=feed, event_bus=event_bus)
