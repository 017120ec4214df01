#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
绩效指标计算
"""
from decimal import Decimal
from typing import Any, Dict, List, Sequence

import numpy as np


def drawdown_curve(equity_values: Sequence) -> List[float]:
    """
    回撤曲线 (equity - peak) / peak，峰值不为正时记 0
    """
    if len(equity_values) == 0:
        return []
    equity_array = np.array([float(v) for v in equity_values], dtype=np.float64)
    peak = np.maximum.accumulate(equity_array)
    safe_peak = np.where(peak > 0, peak, 1.0)
    drawdown = np.where(peak > 0, (equity_array - peak) / safe_peak, 0.0)
    return drawdown.tolist()


def max_drawdown(equity_values: Sequence) -> float:
    curve = drawdown_curve(equity_values)
    return float(min(curve)) if curve else 0.0


def total_return(initial_equity: Decimal, final_equity: Decimal) -> Decimal:
    if initial_equity is None or final_equity is None or initial_equity <= 0:
        return Decimal(0)
    return final_equity / initial_equity - 1


def calculate_metrics(equity_values: Sequence, initial_equity: Decimal, final_equity: Decimal,
                      trades: List[Dict[str, Any]]) -> Dict[str, Any]:
    """
    汇总绩效指标

    返回:
        total_return: 总收益率(Decimal)
        max_drawdown: 最大回撤(负数)
        volatility: 逐点收益率标准差
        total_trades / buy_trades / sell_trades: 成交笔数
        fees: 按币种汇总的手续费
    """
    equity_array = np.array([float(v) for v in equity_values], dtype=np.float64)
    volatility = 0.0
    if len(equity_array) > 2 and np.all(equity_array[:-1] > 0):
        returns = np.diff(equity_array) / equity_array[:-1]
        volatility = float(np.std(returns, ddof=1))
    fees: Dict[str, Decimal] = {}
    for trade in trades:
        fees[trade["fee_currency"]] = fees.get(trade["fee_currency"], Decimal(0)) + trade["fee"]
    return {
        "total_return": total_return(initial_equity, final_equity),
        "max_drawdown": max_drawdown(equity_values),
        "volatility": volatility,
        "total_trades": len(trades),
        "buy_trades": sum(1 for t in trades if t["side"] == "BUY"),
        "sell_trades": sum(1 for t in trades if t["side"] == "SELL"),
        "fees": fees,
    }
