#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
磁盘缓存数据源包装：同一参数的历史数据只从底层数据源读取一次
"""

import pickle
from typing import Any, Iterator, List

from diskcache import Cache

from multipair_core.models import DataType, TimeFrame
from multipair_core.utils import get_logger

from .base import DataSource

logger = get_logger(__name__)


class DataCache(DataSource):
    """基于 diskcache 的数据源缓存"""
    display_name = "缓存数据源"

    def __init__(self, data_source: DataSource, cache_dir: str = ".cache", expire: int = 3600 * 12,
                 namespace: str = None):
        super().__init__()
        self.data_source = data_source
        self.namespace = namespace
        self.supported_data_types = data_source.supported_data_types
        self.cache = Cache(cache_dir)
        self.expire = expire
        self.init = False

    def get_history_data(self, pair: str, data_type: DataType = DataType.KLINE, timeframe: TimeFrame = None,
                         start_time: int = None, end_time: int = None) -> Iterator[Any]:
        cache_key = self._make_cache_key(pair, data_type.value, timeframe.value if timeframe else None,
                                         start_time, end_time)
        result = self.cache.get(cache_key)
        if result is not None:
            logger.debug(f"缓存命中: pair={pair}, type={data_type.value}, rows={len(result)}")
            return iter(result)

        result = self._get_history_data(pair, data_type, timeframe, start_time, end_time)
        self.cache.set(cache_key, result, expire=self.expire)
        logger.info(f"缓存写入: pair={pair}, type={data_type.value}, rows={len(result)}")
        return iter(result)

    def _make_cache_key(self, *args) -> str:
        # 同一缓存目录下用数据源类名和 namespace 区分不同数据源
        source = self.data_source
        key_tuple = (f"{source.__class__.__module__}.{source.__class__.__name__}", self.namespace, args)
        return pickle.dumps(key_tuple, protocol=0).hex()

    def _get_history_data(self, pair: str, data_type: DataType, timeframe: TimeFrame,
                          start_time: int, end_time: int) -> List[Any]:
        if not self.init:
            self.data_source.on_start()
            self.init = True
        return list(self.data_source.get_history_data(pair, data_type, timeframe, start_time, end_time))

    def clear(self):
        self.cache.clear()

    def on_stop(self):
        if self.init:
            self.data_source.on_stop()
            self.init = False
        self.cache.close()
