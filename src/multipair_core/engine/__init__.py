#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
运行引擎：回测/实盘运行器、交易记录与绩效
"""

from .backtest import BacktestRunner, run_backtest
from .base import Runner
from .live import LiveFeed, LiveRunner, create_live_runner
from .performance import calculate_metrics, drawdown_curve, max_drawdown, total_return
from .recorder import TradeRecorder
from .result import RunResult

__all__ = [
    "BacktestRunner",
    "run_backtest",
    "Runner",
    "LiveFeed",
    "LiveRunner",
    "create_live_runner",
    "calculate_metrics",
    "drawdown_curve",
    "max_drawdown",
    "total_return",
    "TradeRecorder",
    "RunResult",
]
