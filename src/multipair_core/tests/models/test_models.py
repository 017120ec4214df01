#!/usr/bin/env python
# -*- coding: utf-8 -*-

import unittest
from decimal import Decimal

from multipair_core.errors import InvariantViolation, ValidationError
from multipair_core.models import (
    END_OF_DATA,
    BacktestConfig,
    EngineConfig,
    FeeConfig,
    FillPricePolicy,
    FillReport,
    Order,
    OrderIntent,
    OrderSide,
    OrderStatus,
    OrderType,
    PairConfig,
    SwapPosition,
    TimeFrame,
    TradeInsType,
    TradingPair,
    Transaction,
    TransactionType,
)

T0 = 1704067200000


def make_order(quantity="2", price="100", side=OrderSide.BUY):
    quantity, price = Decimal(quantity), Decimal(price)
    return Order(order_id=1, pair="BTC-USDT", side=side, order_type=OrderType.LimitOrder, price=price,
                 quantity=quantity, reserve_currency="USDT", reserved_amount=quantity * price,
                 created_at=T0, seq=1)


class TestOrderIntent(unittest.TestCase):
    """测试下单意图的类型转换"""

    def test_conversion(self):
        intent = OrderIntent("BTC-USDT", "BUY", 2, "1.5", 100)
        self.assertEqual(intent.side, OrderSide.BUY)
        self.assertEqual(intent.order_type, OrderType.LimitOrder)
        self.assertEqual(intent.quantity, Decimal("1.5"))
        self.assertEqual(intent.price, Decimal(100))

    def test_factories(self):
        limit = OrderIntent.limit("BTC-USDT", OrderSide.SELL, "0.1", "101", tag="ladder")
        self.assertEqual(limit.order_type, OrderType.LimitOrder)
        self.assertEqual(limit.tag, "ladder")
        market = OrderIntent.market("BTC-USDT", OrderSide.BUY, "0.1")
        self.assertEqual(market.order_type, OrderType.MarketOrder)
        self.assertIsNone(market.price)

    def test_invalid_number(self):
        with self.assertRaises(ValueError):
            OrderIntent.limit("BTC-USDT", OrderSide.BUY, "abc", "1")


class TestOrderStateMachine(unittest.TestCase):
    """测试订单状态流转"""

    def test_partial_then_full(self):
        order = make_order()
        order.record_fill(Decimal("100"), Decimal("0.5"), Decimal(0), T0 + 1)
        self.assertEqual(order.status, OrderStatus.PARTIALLY_FILLED)
        self.assertEqual(order.remaining, Decimal("1.5"))
        self.assertIsNone(order.filled_at)
        order.record_fill(Decimal("99"), Decimal("1.5"), Decimal("0.001"), T0 + 2)
        self.assertEqual(order.status, OrderStatus.FILLED)
        self.assertEqual(order.filled_at, T0 + 2)
        self.assertEqual(order.avg_price, Decimal("99.25"))
        self.assertEqual(order.fee, Decimal("0.001"))
        self.assertFalse(order.is_active)

    def test_overfill(self):
        order = make_order()
        with self.assertRaises(InvariantViolation):
            order.record_fill(Decimal("100"), Decimal("3"), Decimal(0), T0)
        with self.assertRaises(InvariantViolation):
            order.record_fill(Decimal("100"), Decimal("0"), Decimal(0), T0)

    def test_terminal_states(self):
        """测试终态不可再成交或撤单"""
        order = make_order()
        order.mark_canceled(T0 + 5, "test")
        self.assertEqual(order.status, OrderStatus.CANCELED)
        self.assertEqual(order.canceled_at, T0 + 5)
        self.assertEqual(order.cancel_reason, "test")
        with self.assertRaises(InvariantViolation):
            order.record_fill(Decimal("100"), Decimal("1"), Decimal(0), T0)
        with self.assertRaises(InvariantViolation):
            order.mark_canceled(T0 + 6)

        filled = make_order()
        filled.record_fill(Decimal("100"), Decimal("2"), Decimal(0), T0)
        with self.assertRaises(InvariantViolation):
            filled.mark_canceled(T0 + 1)

    def test_fill_report(self):
        report = FillReport(order_id=1, price="100.5", quantity=1, timestamp=T0, fee="0.01")
        self.assertEqual(report.price, Decimal("100.5"))
        self.assertEqual(report.quantity, Decimal(1))
        self.assertEqual(report.fee, Decimal("0.01"))


class TestTradingPair(unittest.TestCase):
    """测试标记价格时间单调"""

    def test_update_mark(self):
        pair = TradingPair("BTC-USDT", "BTC", "USDT")
        pair.update_mark(Decimal("100"), T0)
        pair.update_mark(Decimal("101"), T0)
        self.assertEqual(pair.mark_price, Decimal("101"))
        with self.assertRaises(InvariantViolation):
            pair.update_mark(Decimal("102"), T0 - 1)

    def test_from_config(self):
        pair = TradingPair.from_config(PairConfig("ETH-BTC", timeframe="5m", ins_type="swap", funding=True))
        self.assertEqual((pair.base, pair.quote), ("ETH", "BTC"))
        self.assertEqual(pair.timeframe, TimeFrame.M5)
        self.assertEqual(pair.ins_type, TradeInsType.SWAP)
        self.assertTrue(pair.funding)
        self.assertTrue(pair.is_swap)
        self.assertEqual(pair.leverage, Decimal(1))

    def test_quantize(self):
        """测试按精度截断数量、价格与金额，精度内的值保持原样"""
        pair = TradingPair("BTC-USDT", "BTC", "USDT", quantity_precision=4, price_precision=2)
        self.assertEqual(pair.amount_precision, 6)
        self.assertEqual(pair.quantize_quantity(Decimal(2) / Decimal(3)), Decimal("0.6666"))
        self.assertEqual(str(pair.quantize_quantity(Decimal("1.5"))), "1.5")
        self.assertEqual(pair.quantize_price(Decimal("100.129"), OrderSide.BUY), Decimal("100.12"))
        self.assertEqual(pair.quantize_price(Decimal("100.121"), OrderSide.SELL), Decimal("100.13"))
        self.assertEqual(pair.quantize_amount(Decimal("0.0000001")), Decimal("0.000001"))
        self.assertEqual(pair.quantize_amount(Decimal("0.0000015"), 0), Decimal("0.000002"))
        self.assertFalse(pair.is_swap)

    def test_swap_position(self):
        position = SwapPosition(pair="BTC-USDT-SWAP", quote="USDT", quantity=Decimal(-2), entry_price=Decimal(100),
                                margin=Decimal(50))
        self.assertEqual(position.unrealized_pnl(Decimal(90)), Decimal(20))
        self.assertEqual(position.value(Decimal(90)), Decimal(70))
        self.assertEqual(position.value(None), Decimal(50))
        self.assertEqual(position.liquidation_price, Decimal(125))
        self.assertIsNone(SwapPosition(pair="BTC-USDT-SWAP", quote="USDT").liquidation_price)



class TestConfig(unittest.TestCase):
    """测试配置解析与校验"""

    def test_pair_config(self):
        with self.assertRaises(ValidationError):
            PairConfig("BTCUSDT")
        with self.assertRaises(ValidationError):
            PairConfig("BTC-BTC")
        with self.assertRaises(ValueError):
            PairConfig("BTC-USDT", timeframe="7m")
        with self.assertRaises(ValidationError):
            PairConfig("BTC-USDT-SWAP", ins_type="swap", leverage="0")
        with self.assertRaises(ValidationError):
            PairConfig("BTC-USDT", quantity_precision=-1)
        self.assertEqual(PairConfig("BTC-USDT", price_precision="2").price_precision, 2)

    def test_fee_config(self):
        fee = FeeConfig(fee_type="2", maker_fee="0.001", taker_fee=0.002)
        self.assertEqual(fee.fee_type, 2)
        self.assertEqual(fee.taker_fee, Decimal("0.002"))
        with self.assertRaises(ValidationError):
            FeeConfig(fee_type=5)
        with self.assertRaises(ValidationError):
            FeeConfig(maker_fee="-0.1")

    def test_engine_config(self):
        config = EngineConfig(initial_capital={"USDT": "1000"}, pairs=[{"symbol": "BTC-USDT"}],
                              fee={"fee_type": 0})
        self.assertEqual(config.initial_capital["USDT"], Decimal(1000))
        self.assertIsInstance(config.pairs[0], PairConfig)
        self.assertEqual(config.fee.fee_type, 0)
        with self.assertRaises(ValidationError):
            EngineConfig(initial_capital={"USDT": "-1"})
        with self.assertRaises(ValidationError):
            EngineConfig(pairs=[{"symbol": "BTC-USDT"}, {"symbol": "BTC-USDT"}])

    def test_backtest_config(self):
        config = BacktestConfig(start_time="2024-01-01", end_time="2024-01-02 00:00:00",
                                fill_price_policy="OPEN_IF_GAPPED", volume_fill_ratio="0.1")
        self.assertEqual(config.start_time, T0)
        self.assertEqual(config.end_time, T0 + 86400000)
        self.assertEqual(config.fill_price_policy, FillPricePolicy.OPEN_IF_GAPPED)
        self.assertEqual(config.volume_fill_ratio, Decimal("0.1"))
        with self.assertRaises(ValidationError):
            BacktestConfig(start_time=T0 + 1, end_time=T0)
        with self.assertRaises(ValidationError):
            BacktestConfig(volume_fill_ratio=0)


class TestMisc(unittest.TestCase):

    def test_end_of_data(self):
        self.assertFalse(END_OF_DATA)
        self.assertIs(END_OF_DATA, type(END_OF_DATA)())
        self.assertEqual(repr(END_OF_DATA), "END_OF_DATA")

    def test_timeframe(self):
        self.assertEqual(TimeFrame.from_string("1H").milliseconds, 3600000)
        self.assertEqual(TimeFrame.M1.milliseconds, 60000)

    def test_transaction_type(self):
        tx = Transaction(type=5, currency="USDT", amount=Decimal("-1"), balance_before=Decimal(2),
                         balance_after=Decimal(1))
        self.assertEqual(tx.type, TransactionType.FEE)
        self.assertEqual(str(tx.type), "FEE")


if __name__ == "__main__":
    unittest.main()
