#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
数据管理器：加载各交易对的K线与资金费率，校验后按时间归并为单一事件流。

同一时间戳下资金费率事件先于K线；同类事件按交易对加载顺序排列。
"""
import heapq
from typing import Any, Iterator, List, Mapping, Optional, Tuple

from multipair_core.errors import DataError
from multipair_core.event import Event, EventBus, EventSource, EventType
from multipair_core.models import END_OF_DATA, DataGap, DataType, FundingRate, KLine, TimeFrame
from multipair_core.utils import get_logger, to_decimal

logger = get_logger(__name__)

# 同一时间戳下的事件优先级
_FUNDING_PRIORITY = 0
_KLINE_PRIORITY = 1

_KLINE_FIELDS = ("start_time", "open", "high", "low", "close", "volume")
_FUNDING_FIELDS = ("timestamp", "rate")


class DataManager:
    """
    行情数据管理器

    load 阶段一次性读取并校验全部数据，next 阶段通过 heapq.merge 惰性归并。
    """

    def __init__(self, data_source, event_bus: EventBus = None):
        self.data_source = data_source
        self.event_bus = event_bus
        self.gaps: List[DataGap] = []
        self._pairs: List[str] = []
        # (优先级, 交易对加载序号, 事件列表)
        self._streams: List[Tuple[int, int, List[Any]]] = []
        self._iterator: Optional[Iterator] = None

    @property
    def pairs(self) -> List[str]:
        return list(self._pairs)

    def load(self, pair: str, timeframe: TimeFrame, start: int = None, end: int = None, funding: bool = False):
        """
        加载单个交易对的数据

        参数:
            pair: 交易对
            timeframe: K线粒度
            start: 开始时间(毫秒，含)
            end: 结束时间(毫秒，不含)
            funding: 是否同时加载资金费率
        """
        if pair in self._pairs:
            raise DataError(f"交易对重复加载: {pair}")
        index = len(self._pairs)
        klines = self._load_klines(pair, timeframe, start, end)
        funding_rates = self._load_funding(pair, start, end) if funding else []
        self._pairs.append(pair)
        self._streams.append((_KLINE_PRIORITY, index, klines))
        if funding_rates:
            self._streams.append((_FUNDING_PRIORITY, index, funding_rates))
        logger.info(f"加载数据完成: {pair} {timeframe.value}, K线 {len(klines)} 条, 资金费率 {len(funding_rates)} 条")
        self._iterator = None

    def _read(self, pair: str, data_type: DataType, timeframe: TimeFrame, start: int, end: int) -> List[Any]:
        try:
            return list(self.data_source.get_history_data(pair, data_type, timeframe, start, end))
        except DataError:
            raise
        except Exception as e:
            raise DataError(f"读取 {pair} {data_type.value} 数据失败: {e}") from e

    def _load_klines(self, pair: str, timeframe: TimeFrame, start: int, end: int) -> List[KLine]:
        rows = self._read(pair, DataType.KLINE, timeframe, start, end)
        interval = timeframe.milliseconds
        klines = []
        for i, row in enumerate(rows):
            kline = self._to_kline(pair, timeframe, row, i)
            if klines:
                prev = klines[-1]
                delta = kline.start_time - prev.start_time
                if delta <= 0:
                    raise DataError(f"{pair} 第{i}行K线时间重复或倒序: {prev.start_time} -> {kline.start_time}")
                if delta < interval:
                    raise DataError(f"{pair} 第{i}行K线间隔小于时间粒度: {delta}ms < {interval}ms")
                if kline.start_time < prev.end_time:
                    raise DataError(f"{pair} 第{i}行K线与上一根重叠: 开盘 {kline.start_time} 早于上一根收盘 {prev.end_time}")
                if delta > interval:
                    gap = DataGap(pair=pair, after=prev.start_time, before=kline.start_time,
                                  missing_bars=max(1, delta // interval - 1))
                    self._report_gap(gap)
            klines.append(kline)
        return klines

    def _to_kline(self, pair: str, timeframe: TimeFrame, row: Any, index: int) -> KLine:
        if isinstance(row, KLine):
            if row.pair != pair:
                raise DataError(f"{pair} 第{index}行K线交易对不一致: {row.pair}")
            values = {name: getattr(row, name) for name in _KLINE_FIELDS + ("end_time",)}
        elif isinstance(row, Mapping):
            values = dict(row)
        else:
            raise DataError(f"{pair} 第{index}行K线格式无法识别: {row!r}")

        missing = [name for name in _KLINE_FIELDS if values.get(name) is None]
        if missing:
            raise DataError(f"{pair} 第{index}行K线缺少字段: {missing}")
        try:
            start_time = int(values["start_time"])
            end_time = int(values["end_time"]) if values.get("end_time") is not None \
                else start_time + timeframe.milliseconds
            prices = {name: to_decimal(values[name], name) for name in ("open", "high", "low", "close")}
            volume = to_decimal(values["volume"], "volume")
        except (TypeError, ValueError) as e:
            raise DataError(f"{pair} 第{index}行K线字段无法解析: {e}") from e

        if any(not p.is_finite() or p <= 0 for p in prices.values()):
            raise DataError(f"{pair} 第{index}行K线价格必须为正: {prices}")
        if prices["high"] < max(prices["open"], prices["close"]) or prices["low"] > min(prices["open"], prices["close"]):
            raise DataError(f"{pair} 第{index}行K线高低价与开收盘价矛盾: {prices}")
        if not volume.is_finite() or volume < 0:
            raise DataError(f"{pair} 第{index}行K线成交量为负: {volume}")
        if end_time <= start_time:
            raise DataError(f"{pair} 第{index}行K线收盘时间不晚于开盘时间: {start_time} -> {end_time}")
        return KLine(pair=pair, timeframe=timeframe, start_time=start_time, end_time=end_time,
                     volume=volume, **prices)

    def _load_funding(self, pair: str, start: int, end: int) -> List[FundingRate]:
        rows = self._read(pair, DataType.FUNDING_RATE, None, start, end)
        result = []
        for i, row in enumerate(rows):
            if isinstance(row, FundingRate):
                values = {"timestamp": row.timestamp, "rate": row.rate}
            elif isinstance(row, Mapping):
                values = row
            else:
                raise DataError(f"{pair} 第{i}行资金费率格式无法识别: {row!r}")
            missing = [name for name in _FUNDING_FIELDS if values.get(name) is None]
            if missing:
                raise DataError(f"{pair} 第{i}行资金费率缺少字段: {missing}")
            try:
                funding = FundingRate(pair=pair, timestamp=int(values["timestamp"]),
                                      rate=to_decimal(values["rate"], "rate"))
            except (TypeError, ValueError) as e:
                raise DataError(f"{pair} 第{i}行资金费率字段无法解析: {e}") from e
            if not funding.rate.is_finite():
                raise DataError(f"{pair} 第{i}行资金费率非法: {funding.rate}")
            if result and funding.timestamp <= result[-1].timestamp:
                raise DataError(f"{pair} 第{i}行资金费率时间重复或倒序: {result[-1].timestamp} -> {funding.timestamp}")
            result.append(funding)
        return result

    def _report_gap(self, gap: DataGap):
        self.gaps.append(gap)
        logger.warning(f"{gap.pair} K线缺口: {gap.after} -> {gap.before}, 缺失 {gap.missing_bars} 根")
        if self.event_bus is not None:
            self.event_bus.publish_event(Event(EventType.DATA_GAP, gap, EventSource.of(self)))

    @staticmethod
    def _keyed(priority: int, index: int, events: List[Any]):
        for event in events:
            yield event.timestamp, priority, index, event

    def _build_iterator(self) -> Iterator[Any]:
        # 同一 (时间戳, 优先级, 交易对) 只会出现在一个严格递增的流里，事件对象本身不会参与比较
        merged = heapq.merge(*(self._keyed(priority, index, events) for priority, index, events in self._streams))
        return (item[3] for item in merged)

    def next(self):
        """返回下一个事件，数据耗尽时返回 END_OF_DATA"""
        if self._iterator is None:
            self._iterator = self._build_iterator()
        return next(self._iterator, END_OF_DATA)

    def reset(self):
        """从头开始重新归并"""
        self._iterator = None

    def __iter__(self):
        self.reset()
        while True:
            event = self.next()
            if event is END_OF_DATA:
                return
            yield event

    @property
    def total_events(self) -> int:
        return sum(len(events) for _, _, events in self._streams)

    def klines(self, pair: str) -> List[KLine]:
        index = self._pairs.index(pair)
        for priority, i, events in self._streams:
            if i == index and priority == _KLINE_PRIORITY:
                return list(events)
        return []
