#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
策略模块
"""

from .base import Intent, Strategy
from .rebalance import RatioLadderStrategy

__all__ = ["Intent", "Strategy", "RatioLadderStrategy"]
