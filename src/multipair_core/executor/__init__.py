#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
交易执行模块：手续费模型与交易所适配器
"""

from .base import ExchangeAdapter
from .fee import FeeModel
from .paper import PaperExchangeAdapter

__all__ = ["ExchangeAdapter", "FeeModel", "PaperExchangeAdapter"]
