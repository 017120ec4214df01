#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
数据模型模块，包含各模块间交互的DTO和通用数据结构。
"""
from .config import BacktestConfig, EngineConfig, FeeConfig, LiveConfig, PairConfig
from .constants import (
    DataType,
    DriftCheckMode,
    FillPricePolicy,
    LiquidityType,
    OrderSide,
    OrderStatus,
    OrderType,
    RunnerPhase,
    TimeFrame,
    TradeInsType,
)
from .data import END_OF_DATA, DataGap, FundingRate, KLine
from .order import CancelIntent, Fill, FillReport, Order, OrderIntent
from .parameter import ChoiceType, Field, FieldType
from .position import SwapPosition
from .snapshot import (
    AssetView,
    FillEvent,
    FundingSettlementEvent,
    LiquidationEvent,
    MarketSnapshot,
    PairView,
    Rejection,
)
from .trading_pair import TradingPair
from .transaction import Transaction, TransactionType

__all__ = [
    "BacktestConfig",
    "EngineConfig",
    "FeeConfig",
    "LiveConfig",
    "PairConfig",
    "DataType",
    "DriftCheckMode",
    "FillPricePolicy",
    "LiquidityType",
    "OrderSide",
    "OrderStatus",
    "OrderType",
    "RunnerPhase",
    "TimeFrame",
    "TradeInsType",
    "END_OF_DATA",
    "DataGap",
    "FundingRate",
    "KLine",
    "CancelIntent",
    "Fill",
    "FillReport",
    "Order",
    "OrderIntent",
    "ChoiceType",
    "Field",
    "FieldType",
    "SwapPosition",
    "AssetView",
    "FillEvent",
    "FundingSettlementEvent",
    "LiquidationEvent",
    "MarketSnapshot",
    "PairView",
    "Rejection",
    "TradingPair",
    "Transaction",
    "TransactionType",
]
