#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
历史数据源模块
"""

from .base import DataSource
from .csv_source import CsvDataSource
from .data_cache import DataCache
from .memory_source import InMemoryDataSource

__all__ = ["DataSource", "CsvDataSource", "DataCache", "InMemoryDataSource"]
