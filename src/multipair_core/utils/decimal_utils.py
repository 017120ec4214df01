#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Decimal 工具模块，处理金融数值精度问题。
"""

from decimal import ROUND_DOWN, ROUND_HALF_UP, ROUND_UP, Decimal, InvalidOperation
from typing import Any

ZERO = Decimal(0)
ONE = Decimal(1)


def to_decimal(value: Any, name: str = "value") -> Decimal:
    """
    将任意数值安全转换为Decimal，float先转字符串避免二进制误差

    参数:
        value: 待转换值
        name: 字段名，用于报错信息

    返回:
        Decimal
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool) or value is None:
        raise ValueError(f"{name} 不是合法数值: {value!r}")
    try:
        if isinstance(value, float):
            return Decimal(str(value))
        return Decimal(value)
    except (InvalidOperation, TypeError) as e:
        raise ValueError(f"{name} 不是合法数值: {value!r}") from e


class DecimalEncoder:
    """处理Decimal类型的序列化"""

    @staticmethod
    def encode(obj: Any) -> Any:
        """
        将对象中的Decimal递归转换为字符串

        参数:
            obj: 要编码的对象

        返回:
            编码后的对象
        """
        if isinstance(obj, Decimal):
            return str(obj)
        elif isinstance(obj, dict):
            return {k: DecimalEncoder.encode(v) for k, v in obj.items()}
        elif isinstance(obj, list):
            return [DecimalEncoder.encode(item) for item in obj]
        elif isinstance(obj, tuple):
            return tuple(DecimalEncoder.encode(item) for item in obj)
        return obj


def decimal_quantize(d, n=2, rounding=2):
    """
    decimal 精度处理
    :param d: 待处理decimal
    :param n: 小数位数
    :param rounding: 保留方式 0 四舍五入 1 进一法 2 舍弃
    :return:
    """
    if d is None:
        return None
    d = to_decimal(d)
    r = ROUND_HALF_UP
    if rounding == 1:
        r = ROUND_UP
    elif rounding == 2:
        r = ROUND_DOWN

    p = "0"
    if n > 0:
        p = "0." + "0" * n
    return d.quantize(Decimal(p), rounding=r)
