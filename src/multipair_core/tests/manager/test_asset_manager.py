#!/usr/bin/env python
# -*- coding: utf-8 -*-

import unittest
from decimal import Decimal

from multipair_core.errors import InsufficientBalanceError, InvariantViolation
from multipair_core.event import EventBus, EventType
from multipair_core.executor import FeeModel
from multipair_core.manager import AssetManager, ClosePositionPolicy, OrderManager
from multipair_core.models import (
    FeeConfig,
    LiquidityType,
    OrderIntent,
    OrderSide,
    OrderStatus,
    TradeInsType,
    TradingPair,
    TransactionType,
)

T0 = 1704067200000
PAIR = "BTC-USDT"
SWAP = "BTC-USDT-SWAP"


class TestAssetManager(unittest.TestCase):
    """
    测试资产管理器：冻结/解冻、成交结算、资金费与强平
    """

    def setUp(self):
        self.bus = EventBus()
        self.transactions = []
        self.liquidations = []
        self.bus.subscribe_event(EventType.TRANSACTION, lambda e: self.transactions.append(e.data))
        self.bus.subscribe_event(EventType.LIQUIDATION, lambda e: self.liquidations.append(e.data))

    def build(self, capital, fee_type=0):
        self.pairs = {PAIR: TradingPair(PAIR, "BTC", "USDT")}
        self.fee_model = FeeModel(FeeConfig(fee_type=fee_type))
        self.am = AssetManager(capital, self.pairs, self.bus, timestamp=T0)
        self.om = OrderManager(self.am, self.pairs, self.fee_model, self.bus)
        self.am.liquidation_policy = ClosePositionPolicy(self.om, self.fee_model)
        return self.am

    def test_initial_capital(self):
        am = self.build({"USDT": "1000", "BTC": 1})
        self.assertEqual(am.free("USDT"), Decimal(1000))
        self.assertEqual(am.total("BTC"), Decimal(1))
        self.assertEqual(am.total("ETH"), Decimal(0))
        self.assertEqual(am.currencies, ["BTC", "ETH", "USDT"])
        deposits = [tx for tx in self.transactions if tx.type == TransactionType.DEPOSIT]
        self.assertEqual(len(deposits), 2)

    def test_reserve_release(self):
        """测试冻结与解冻保持总额不变"""
        am = self.build({"USDT": "1000"})
        am.reserve("USDT", Decimal("300"), order_id=1, timestamp=T0)
        self.assertEqual(am.free("USDT"), Decimal(700))
        self.assertEqual(am.locked("USDT"), Decimal(300))
        am.release("USDT", Decimal("100"), order_id=1, timestamp=T0)
        self.assertEqual(am.free("USDT"), Decimal(800))
        self.assertEqual(am.locked("USDT"), Decimal(200))
        self.assertEqual(am.total("USDT"), Decimal(1000))

    def test_reserve_errors(self):
        am = self.build({"USDT": "100"})
        with self.assertRaises(InsufficientBalanceError) as ctx:
            am.try_reserve("USDT", Decimal("100.01"))
        self.assertEqual(ctx.exception.currency, "USDT")
        self.assertEqual(am.free("USDT"), Decimal(100))
        with self.assertRaises(InvariantViolation):
            am.reserve("USDT", Decimal("101"))
        with self.assertRaises(InvariantViolation):
            am.release("USDT", Decimal("1"))
        with self.assertRaises(InvariantViolation):
            am.deposit("USDT", "-1")

    def test_apply_fill_with_fee(self):
        """测试成交结算：手续费以收入币种扣除"""
        am = self.build({"USDT": "10000"}, fee_type=2)
        order_id = self.om.submit(OrderIntent.limit(PAIR, OrderSide.BUY, "1", "100"), T0)
        order = self.om.get(order_id)
        fee = self.fee_model.calculate(OrderSide.BUY, Decimal(100), Decimal(1), LiquidityType.MAKER)
        self.assertEqual(fee, Decimal("0.0002"))
        am.apply_fill(order, Decimal(100), Decimal(1), fee, T0)
        self.assertEqual(am.total("USDT"), Decimal(9900))
        self.assertEqual(am.locked("USDT"), Decimal(0))
        self.assertEqual(am.free("BTC"), Decimal("0.9998"))

    def test_apply_fill_releases_surplus(self):
        """测试市价买单最后一笔成交后退回多冻结的部分"""
        am = self.build({"USDT": "1000"})
        self.pairs[PAIR].update_mark(Decimal(100), T0)
        order_id = self.om.submit(OrderIntent.market(PAIR, OrderSide.BUY, "2"), T0)
        order = self.om.get(order_id)
        self.assertEqual(order.reserved_amount, Decimal("210"))
        am.apply_fill(order, Decimal(98), Decimal(2), Decimal(0), T0)
        self.assertEqual(order.reserved_amount, Decimal(0))
        self.assertEqual(am.locked("USDT"), Decimal(0))
        self.assertEqual(am.free("USDT"), Decimal(804))
        self.assertEqual(am.free("BTC"), Decimal(2))

    def test_apply_fill_invalid(self):
        am = self.build({"USDT": "1000"})
        order = self.om.get(self.om.submit(OrderIntent.limit(PAIR, OrderSide.BUY, "1", "100"), T0))
        with self.assertRaises(InvariantViolation):
            am.apply_fill(order, Decimal(100), Decimal(2), Decimal(0), T0)
        with self.assertRaises(InvariantViolation):
            am.apply_fill(order, Decimal(101), Decimal(1), Decimal(0), T0)
        with self.assertRaises(InvariantViolation):
            am.apply_fill(order, Decimal(100), Decimal(1), Decimal(-1), T0)
        # 校验失败不改变余额
        self.assertEqual(am.locked("USDT"), Decimal(100))
        self.assertEqual(am.free("USDT"), Decimal(900))

    def test_ledger_conservation(self):
        """测试流水累计等于各币种总余额"""
        am = self.build({"USDT": "10000", "BTC": "1"}, fee_type=2)
        self.pairs[PAIR].update_mark(Decimal(100), T0)
        for intent in (OrderIntent.limit(PAIR, OrderSide.BUY, "3", "100"),
                       OrderIntent.limit(PAIR, OrderSide.SELL, "2", "101"),
                       OrderIntent.market(PAIR, OrderSide.BUY, "1")):
            order = self.om.get(self.om.submit(intent, T0))
            price = order.price or Decimal("100.5")
            fee = self.fee_model.calculate(order.side, price, order.quantity, LiquidityType.MAKER)
            self.om.apply_external_fill(order.order_id, price, order.quantity, fee, T0)
        am.apply_funding(PAIR, Decimal("0.001"), am.total("BTC"), Decimal(100), T0)
        for currency in ("USDT", "BTC"):
            journal = sum((tx.amount for tx in self.transactions
                           if tx.currency == currency and tx.type.moves_total), Decimal(0))
            self.assertEqual(journal, am.total(currency))
        am.verify(self.om)

    def test_funding_long_pays(self):
        """测试多头在正费率下支付资金费"""
        am = self.build({"USDT": "1000", "BTC": "1"})
        settlement = am.apply_funding(PAIR, Decimal("0.0001"), Decimal(1), Decimal(100), T0)
        self.assertEqual(settlement.payment, Decimal("0.01"))
        self.assertEqual(am.free("USDT"), Decimal("999.99"))
        self.assertFalse(settlement.liquidated)
        funding = [tx for tx in self.transactions if tx.type == TransactionType.FUNDING]
        self.assertEqual(funding[0].amount, Decimal("-0.01"))

    def test_funding_short_receives(self):
        am = self.build({"USDT": "1000"})
        settlement = am.apply_funding(PAIR, Decimal("0.0001"), Decimal(-1), Decimal(100), T0)
        self.assertEqual(settlement.payment, Decimal("-0.01"))
        self.assertEqual(am.free("USDT"), Decimal("1000.01"))

    def test_funding_zero_position(self):
        am = self.build({"USDT": "1000"})
        settlement = am.apply_funding(PAIR, Decimal("0.01"), Decimal(0), Decimal(100), T0)
        self.assertEqual(settlement.payment, Decimal(0))
        self.assertEqual(am.free("USDT"), Decimal(1000))
        self.assertFalse([tx for tx in self.transactions if tx.type == TransactionType.FUNDING])

    def test_funding_liquidation(self):
        """测试资金费超过可用计价币时撤单并强平卖出"""
        am = self.build({"USDT": "0.5", "BTC": "2"}, fee_type=2)
        self.pairs[PAIR].update_mark(Decimal(100), T0)
        sell_id = self.om.submit(OrderIntent.limit(PAIR, OrderSide.SELL, "1", "120"), T0)
        settlement = am.apply_funding(PAIR, Decimal("0.01"), am.total("BTC"), Decimal(100), T0 + 1)
        self.assertTrue(settlement.liquidated)
        self.assertEqual(len(self.liquidations), 1)
        self.assertEqual(self.liquidations[0].required, Decimal(2))
        self.assertEqual(self.liquidations[0].available, Decimal("0.5"))
        self.assertEqual(self.om.get(sell_id).status, OrderStatus.CANCELED)
        self.assertEqual(len(settlement.liquidation_fills), 1)
        fill = settlement.liquidation_fills[0]
        self.assertIsNone(fill.order_id)
        self.assertEqual(fill.quantity, Decimal(2))
        self.assertEqual(fill.fee, Decimal("0.1"))
        self.assertEqual(settlement.shortfall, Decimal(0))
        self.assertEqual(am.total("BTC"), Decimal(0))
        # 0.5 + 200 - 0.1 - 2
        self.assertEqual(am.free("USDT"), Decimal("198.4"))
        am.verify(self.om)

    def test_funding_shortfall(self):
        """测试强平后仍不足时截断并记录缺口，余额不为负"""
        am = self.build({"USDT": "0.001"})
        settlement = am.apply_funding(PAIR, Decimal("0.01"), Decimal(1), Decimal(100), T0)
        self.assertTrue(settlement.liquidated)
        self.assertEqual(settlement.liquidation_fills, ())
        self.assertEqual(settlement.shortfall, Decimal("0.999"))
        self.assertEqual(am.free("USDT"), Decimal(0))
        am.verify(self.om)

    def test_total_equity(self):
        """测试权益估值：直接报价、反向报价与无法定价的币种"""
        pairs = {
            PAIR: TradingPair(PAIR, "BTC", "USDT"),
            "USDT-EUR": TradingPair("USDT-EUR", "USDT", "EUR"),
        }
        am = AssetManager({"USDT": "1000", "BTC": "2", "EUR": "50", "DOGE": "10"}, pairs, self.bus)
        pairs[PAIR].update_mark(Decimal(100), T0)
        pairs["USDT-EUR"].update_mark(Decimal("0.5"), T0)
        # EUR 按 1 / 0.5 折算为 USDT，DOGE 无法定价按 0 计
        self.assertEqual(am.total_equity("USDT"), Decimal(1000) + Decimal(200) + Decimal(100))
        self.assertEqual(am.total_equity("USDT", {PAIR: Decimal(110)}), Decimal(1320))
        self.assertIsNone(am.price_of("DOGE", "USDT"))
        self.assertEqual(am.price_of("USDT", "USDT"), Decimal(1))

    def test_total_equity_through_intermediate_currency(self):
        """测试没有直接交易对时经由中间币种折算"""
        pairs = {
            PAIR: TradingPair(PAIR, "BTC", "USDT"),
            "ETH-BTC": TradingPair("ETH-BTC", "ETH", "BTC"),
        }
        am = AssetManager({"ETH": "1"}, pairs, self.bus)
        pairs[PAIR].update_mark(Decimal(100), T0)
        pairs["ETH-BTC"].update_mark(Decimal("0.05"), T0)
        self.assertEqual(am.price_of("ETH", "USDT"), Decimal(5))
        self.assertEqual(am.price_of("USDT", "ETH"), Decimal("0.2"))
        self.assertEqual(am.total_equity("USDT"), Decimal(5))
        self.assertEqual(am.total_equity("USDT", {"ETH-BTC": Decimal("0.1")}), Decimal(10))

    def test_verify_detects_mismatch(self):
        am = self.build({"USDT": "1000"})
        self.om.submit(OrderIntent.limit(PAIR, OrderSide.BUY, "1", "100"), T0)
        am.verify(self.om)
        am.get("USDT").locked += Decimal(1)
        with self.assertRaises(InvariantViolation):
            am.verify(self.om)
        am.get("USDT").locked -= Decimal(1)
        am.get("USDT").free = Decimal(-1)
        with self.assertRaises(InvariantViolation):
            am.verify()

    def test_get_state(self):
        am = self.build({"USDT": "1000"})
        self.assertEqual(am.get_state(), {"USDT": {"free": "1000", "locked": "0"}})


class TestSwapPositions(unittest.TestCase):
    """
    测试永续持仓：保证金占用、平仓盈亏、反手与强平
    """

    def setUp(self):
        self.bus = EventBus()
        self.transactions = []
        self.bus.subscribe_event(EventType.TRANSACTION, lambda e: self.transactions.append(e.data))

    def build(self, capital, fee_type=0, leverage=1):
        self.pair = TradingPair(SWAP, "BTC", "USDT", ins_type=TradeInsType.SWAP, leverage=Decimal(leverage))
        self.pairs = {SWAP: self.pair}
        self.am = AssetManager(capital, self.pairs, self.bus, timestamp=T0)
        self.om = OrderManager(self.am, self.pairs, FeeModel(FeeConfig(fee_type=fee_type)), self.bus)
        return self.am

    def fill(self, side, quantity, price, ts=T0):
        order_id = self.om.submit(OrderIntent.limit(SWAP, side, quantity, price), ts)
        return self.om.apply_external_fill(order_id, Decimal(price), Decimal(quantity), None, ts)

    def test_open_long_moves_quote_to_margin(self):
        am = self.build({"USDT": "1000"})
        fill = self.fill(OrderSide.BUY, "2", "100")
        self.assertEqual(fill.fee_currency, "USDT")
        position = am.position(SWAP)
        self.assertEqual(position.quantity, Decimal(2))
        self.assertEqual(position.entry_price, Decimal(100))
        self.assertEqual(position.margin, Decimal(200))
        self.assertEqual(am.free("USDT"), Decimal(800))
        self.assertEqual(am.locked("USDT"), Decimal(0))
        self.assertEqual(am.total("BTC"), Decimal(0))
        self.pair.update_mark(Decimal(110), T0)
        self.assertEqual(am.total_equity("USDT"), Decimal(1020))
        am.verify(self.om)

    def test_close_with_profit_and_fees(self):
        """测试平仓释放保证金并结算盈亏，手续费以计价币扣除"""
        am = self.build({"USDT": "1000"}, fee_type=2)
        self.fill(OrderSide.BUY, "1", "100")
        self.assertEqual(am.free("USDT"), Decimal("899.98"))
        # 平仓单只冻结手续费
        order_id = self.om.submit(OrderIntent.limit(SWAP, OrderSide.SELL, "1", "110"), T0)
        self.assertEqual(self.om.get(order_id).reserved_amount, Decimal("0.055"))
        self.om.apply_external_fill(order_id, Decimal(110), Decimal(1), None, T0)
        position = am.position(SWAP)
        self.assertTrue(position.is_flat)
        self.assertEqual(position.margin, Decimal(0))
        self.assertEqual(position.realized_pnl, Decimal(10))
        self.assertEqual(am.free("USDT"), Decimal("1009.958"))
        self.assertEqual(am.locked("USDT"), Decimal(0))
        journal = sum((tx.amount for tx in self.transactions if tx.type.moves_total), Decimal(0))
        self.assertEqual(journal, am.total("USDT"))
        am.verify(self.om)

    def test_pending_close_orders_count_against_position(self):
        am = self.build({"USDT": "1000"}, fee_type=2)
        self.fill(OrderSide.BUY, "1", "100")
        first = self.om.submit(OrderIntent.limit(SWAP, OrderSide.SELL, "1", "110"), T0)
        second = self.om.submit(OrderIntent.limit(SWAP, OrderSide.SELL, "1", "120"), T0)
        self.assertEqual(self.om.get(first).reserved_amount, Decimal("0.055"))
        self.assertEqual(self.om.get(second).reserved_amount, Decimal("120.06"))
        am.verify(self.om)

    def test_flip_long_to_short(self):
        """测试反手：平掉多头后剩余数量开空"""
        am = self.build({"USDT": "1000"})
        self.fill(OrderSide.BUY, "2", "100")
        order_id = self.om.submit(OrderIntent.limit(SWAP, OrderSide.SELL, "3", "110"), T0)
        self.assertEqual(self.om.get(order_id).reserved_amount, Decimal(110))
        self.om.apply_external_fill(order_id, Decimal(110), Decimal(3), None, T0)
        position = am.position(SWAP)
        self.assertEqual(position.quantity, Decimal(-1))
        self.assertEqual(position.entry_price, Decimal(110))
        self.assertEqual(position.margin, Decimal(110))
        self.assertEqual(position.realized_pnl, Decimal(20))
        self.assertEqual(am.free("USDT"), Decimal(910))
        self.pair.update_mark(Decimal(100), T0)
        self.assertEqual(am.total_equity("USDT"), Decimal(1030))
        self.assertEqual(position.liquidation_price, Decimal(220))
        am.verify(self.om)

    def test_leverage_reduces_margin(self):
        am = self.build({"USDT": "1000"}, leverage=5)
        order_id = self.om.submit(OrderIntent.limit(SWAP, OrderSide.SELL, "1", "100"), T0)
        self.assertEqual(self.om.get(order_id).reserved_amount, Decimal(20))
        self.om.apply_external_fill(order_id, Decimal(100), Decimal(1), None, T0)
        self.assertEqual(am.position(SWAP).margin, Decimal(20))
        self.assertEqual(am.free("USDT"), Decimal(980))
        self.pair.update_mark(Decimal(90), T0)
        self.assertEqual(am.total_equity("USDT"), Decimal(1010))

    def test_loss_beyond_collateral_is_clamped(self):
        """测试亏损超过保证金与可用余额时截断，余额不为负"""
        am = self.build({"USDT": "100"}, leverage=2)
        self.fill(OrderSide.BUY, "2", "100")
        self.assertEqual(am.free("USDT"), Decimal(0))
        self.fill(OrderSide.SELL, "2", "1")
        self.assertTrue(am.position(SWAP).is_flat)
        self.assertEqual(am.total("USDT"), Decimal(0))
        am.verify(self.om)

    def test_close_swap_position(self):
        am = self.build({"USDT": "1000"})
        self.fill(OrderSide.BUY, "1", "100")
        fee = am.close_swap_position(self.pair, Decimal(90), Decimal("0.045"), T0 + 1)
        self.assertEqual(fee, Decimal("0.045"))
        self.assertTrue(am.position(SWAP).is_flat)
        self.assertEqual(am.free("USDT"), Decimal("989.955"))
        liquidation = [tx for tx in self.transactions if tx.type == TransactionType.LIQUIDATION]
        self.assertEqual(liquidation[0].amount, Decimal(-10))
        with self.assertRaises(InvariantViolation):
            am.close_swap_position(self.pair, Decimal(90), Decimal(0), T0 + 2)

    def test_funding_liquidation_closes_swap(self):
        """测试资金费不足时强平永续持仓"""
        am = self.build({"USDT": "100"}, fee_type=2)
        am.liquidation_policy = ClosePositionPolicy(self.om, self.om.fee_model)
        self.fill(OrderSide.BUY, "0.999", "100")
        self.assertEqual(am.free("USDT"), Decimal("0.08002"))
        settlement = am.apply_funding(SWAP, Decimal("0.01"), am.position(SWAP).quantity, Decimal(100), T0 + 1)
        self.assertTrue(settlement.liquidated)
        fill = settlement.liquidation_fills[0]
        self.assertEqual(fill.side, OrderSide.SELL)
        self.assertEqual(fill.quantity, Decimal("0.999"))
        self.assertEqual(fill.fee, Decimal("0.04995"))
        self.assertTrue(am.position(SWAP).is_flat)
        self.assertEqual(settlement.shortfall, Decimal(0))
        # 0.08002 + 99.9 - 0.04995 - 0.999
        self.assertEqual(am.free("USDT"), Decimal("98.93107"))
        am.verify(self.om)

    def test_position_requires_swap_pair(self):
        am = self.build({"USDT": "1000"})
        self.pairs[PAIR] = TradingPair(PAIR, "BTC", "USDT")
        with self.assertRaises(InvariantViolation):
            am.position(PAIR)
        self.assertEqual(am.get_state()["USDT"], {"free": "1000", "locked": "0"})


if __name__ == "__main__":
    unittest.main()
