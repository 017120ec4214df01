#!/usr/bin/env python
# -*- coding: utf-8 -*-
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from multipair_core.models import AssetView, DataGap, Rejection, RunnerPhase


@dataclass
class RunResult:
    """运行结果"""
    phase: RunnerPhase
    abort_reason: Optional[str] = None
    trade_log: List[Dict[str, Any]] = field(default_factory=list)
    equity_curve: List[Tuple[int, Decimal]] = field(default_factory=list)
    rejections: List[Rejection] = field(default_factory=list)
    final_balances: Dict[str, AssetView] = field(default_factory=dict)
    initial_equity: Decimal = None
    final_equity: Decimal = None
    gaps: List[DataGap] = field(default_factory=list)
    metrics: Dict[str, Any] = field(default_factory=dict)
    output_files: Dict[str, str] = field(default_factory=dict)

    @property
    def completed(self) -> bool:
        return self.phase == RunnerPhase.COMPLETED
