#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
工具模块，为 multipair-core 提供实用函数和辅助工具。
"""

from .datetime_utils import DateTimeUtils
from .decimal_utils import ONE, ZERO, DecimalEncoder, decimal_quantize, to_decimal
from .decorator import thread_lock
from .id_generator import IdGenerator, generate, generate_str
from .logging import get_logger, setup_logging

__all__ = [
    "thread_lock",
    "decimal_quantize",
    "to_decimal",
    "ZERO",
    "ONE",
    "IdGenerator",
    "generate",
    "generate_str",
    "DecimalEncoder",
    "DateTimeUtils",
    "setup_logging",
    "get_logger",
]
