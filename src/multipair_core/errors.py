#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
异常定义。

可恢复异常（ValidationError / InsufficientBalanceError / OrderNotFoundError / InvalidStateError）
由运行器在路由策略意图时捕获并记录为拒单；DataError 与 InvariantViolation 为致命异常，导致运行中止。
"""


class MultipairError(Exception):
    """框架异常基类"""


class DataError(MultipairError):
    """行情数据不可读、格式错误或时间戳乱序"""


class ValidationError(MultipairError, ValueError):
    """订单意图参数不合法"""


class InsufficientBalanceError(MultipairError):
    """可用余额不足以冻结所需资金"""

    def __init__(self, currency: str, required, available):
        self.currency = currency
        self.required = required
        self.available = available
        super().__init__(f"{currency} 可用余额不足: 需要 {required}, 可用 {available}")


class OrderNotFoundError(MultipairError, KeyError):
    """订单不存在"""

    def __init__(self, order_id):
        self.order_id = order_id
        super().__init__(f"订单不存在: {order_id}")

    def __str__(self):
        return self.args[0]


class InvalidStateError(MultipairError):
    """订单或运行器处于不允许该操作的状态"""


class InvariantViolation(MultipairError):
    """内部不变量被破坏，属于程序错误"""


RECOVERABLE_ERRORS = (ValidationError, InsufficientBalanceError, OrderNotFoundError, InvalidStateError)
FATAL_ERRORS = (DataError, InvariantViolation)
