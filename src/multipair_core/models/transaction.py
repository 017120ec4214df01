#!/usr/bin/env python
# -*- coding: utf-8 -*-
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum


class TransactionType(Enum):
    """
    流水类型
    """
    FROZEN = 0  # 冻结
    UNFROZEN = 1  # 解冻
    DEPOSIT = 2  # 入金(初始资金)
    TRADE = 4  # 成交收付
    FEE = 5  # 手续费
    FUNDING = 7  # 资金费
    LIQUIDATION = 8  # 强平
    MARGIN = 9  # 永续保证金转入/转出

    @property
    def moves_total(self) -> bool:
        """是否改变币种总余额，冻结/解冻只在可用与冻结之间划转"""
        return self not in (TransactionType.FROZEN, TransactionType.UNFROZEN)

    def __str__(self):
        return self.name


@dataclass
class Transaction:
    """
    资金流水，账本每次变动产生一条

    冻结/解冻: amount 为可用余额(free)的变化，balance_before/after 记录可用余额；
    其余类型: amount 为总余额(free + locked)的变化，balance_before/after 记录总余额。
    因此任一币种所有 moves_total 流水的 amount 之和等于其当前总余额。
    """
    type: TransactionType
    currency: str
    amount: Decimal
    balance_before: Decimal
    balance_after: Decimal
    timestamp: int = None
    order_id: int = None
    desc: str = None

    def __post_init__(self):
        if isinstance(self.type, int):
            self.type = TransactionType(self.type)
        elif isinstance(self.type, str):
            self.type = TransactionType[self.type.upper()]
