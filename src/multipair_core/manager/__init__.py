#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
管理器模块：行情数据、资产与订单
"""

from .asset import Asset, AssetManager, ClosePositionPolicy, LiquidationPolicy
from .data import DataManager
from .order import OrderManager

__all__ = [
    "Asset",
    "AssetManager",
    "ClosePositionPolicy",
    "LiquidationPolicy",
    "DataManager",
    "OrderManager",
]
