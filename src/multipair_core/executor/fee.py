#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
手续费模型
"""
from decimal import Decimal

from multipair_core.models import FeeConfig, LiquidityType, OrderSide


class FeeModel:
    """
    按成交计算手续费，结果以收入币种计：买单收基础币、卖单收计价币。

    fee_type:
        0 无费用
        1 每笔固定费用(计价币)
        2 成交额固定比例
        3 单位成交数量固定费用(计价币)
    限价单(maker)使用 maker_fee，市价单和强平(taker)使用 taker_fee。
    """

    def __init__(self, config: FeeConfig = None):
        self.config = config or FeeConfig()

    def rate(self, liquidity: LiquidityType) -> Decimal:
        return self.config.maker_fee if liquidity == LiquidityType.MAKER else self.config.taker_fee

    def quote_fee(self, price: Decimal, quantity: Decimal, liquidity: LiquidityType) -> Decimal:
        """以计价币计的手续费"""
        fee_type = self.config.fee_type
        rate = self.rate(liquidity)
        if fee_type == 1:
            return rate
        if fee_type == 2:
            return price * quantity * rate
        if fee_type == 3:
            return quantity * rate
        return Decimal(0)

    def calculate(self, side: OrderSide, price: Decimal, quantity: Decimal, liquidity: LiquidityType) -> Decimal:
        """
        计算一笔成交的手续费

        参数:
            side: 成交方向
            price: 成交价
            quantity: 成交数量
            liquidity: maker/taker

        返回:
            收入币种计的手续费，不超过该笔成交的收入
        """
        fee = self.quote_fee(price, quantity, liquidity)
        if side == OrderSide.BUY:
            return min(fee / price, quantity)
        return min(fee, price * quantity)
