#!/usr/bin/env python
# -*- coding: utf-8 -*-

import os
import tempfile
import unittest
from decimal import Decimal

import pandas as pd

from multipair_core.engine import TradeRecorder, calculate_metrics, drawdown_curve, max_drawdown, total_return
from multipair_core.event import Event, EventBus, EventType
from multipair_core.models import DataGap, Fill, LiquidityType, OrderSide

T0 = 1704067200000


class TestPerformance(unittest.TestCase):
    """测试绩效指标"""

    def test_drawdown(self):
        curve = drawdown_curve([Decimal(100), Decimal(120), Decimal(90), Decimal(130)])
        self.assertEqual(curve[0], 0.0)
        self.assertAlmostEqual(curve[2], -0.25)
        self.assertEqual(curve[3], 0.0)
        self.assertAlmostEqual(max_drawdown([100, 120, 90, 130]), -0.25)
        self.assertEqual(max_drawdown([]), 0.0)
        self.assertEqual(drawdown_curve([]), [])

    def test_total_return(self):
        self.assertEqual(total_return(Decimal(100), Decimal(110)), Decimal("0.1"))
        self.assertEqual(total_return(Decimal(0), Decimal(110)), Decimal(0))
        self.assertEqual(total_return(None, Decimal(110)), Decimal(0))

    def test_metrics(self):
        trades = [
            {"side": "BUY", "fee": Decimal("0.1"), "fee_currency": "BTC"},
            {"side": "SELL", "fee": Decimal("2"), "fee_currency": "USDT"},
            {"side": "SELL", "fee": Decimal("1"), "fee_currency": "USDT"},
        ]
        metrics = calculate_metrics([100, 101, 99, 102], Decimal(100), Decimal(102), trades)
        self.assertEqual(metrics["total_return"], Decimal("0.02"))
        self.assertEqual(metrics["total_trades"], 3)
        self.assertEqual(metrics["buy_trades"], 1)
        self.assertEqual(metrics["sell_trades"], 2)
        self.assertEqual(metrics["fees"], {"BTC": Decimal("0.1"), "USDT": Decimal(3)})
        self.assertGreater(metrics["volatility"], 0)
        self.assertLess(metrics["max_drawdown"], 0)


class TestTradeRecorder(unittest.TestCase):
    """测试交易记录与导出"""

    def setUp(self):
        self.bus = EventBus()
        self.recorder = TradeRecorder(self.bus)

    def fill(self, ts, side=OrderSide.BUY, order_id=1):
        return Fill(order_id=order_id, pair="BTC-USDT", side=side, price=Decimal("100.10"),
                    quantity=Decimal("0.5"), fee=Decimal("0.0001"), fee_currency="BTC", timestamp=ts,
                    liquidity=LiquidityType.MAKER)

    def test_equity_one_point_per_timestamp(self):
        self.recorder.record_equity(T0, Decimal(100))
        self.recorder.record_equity(T0, Decimal(101))
        self.recorder.record_equity(T0 + 1, Decimal(102))
        self.assertEqual(self.recorder.equity_curve, [(T0, Decimal(101)), (T0 + 1, Decimal(102))])

    def test_events_collected(self):
        gap = DataGap("BTC-USDT", T0, T0 + 180000, 2)
        self.bus.publish_event(Event(EventType.DATA_GAP, gap))
        self.bus.publish_event(Event(EventType.TRANSACTION, None))
        self.assertEqual(self.recorder.gaps, [gap])
        self.assertEqual(self.recorder.transaction_count, 1)

    def test_save_csv(self):
        """测试CSV导出保留 Decimal 文本精度，强平成交 order_id 为空"""
        self.recorder.record_fill(self.fill(T0), "BTC", Decimal("0.4999"), "USDT", Decimal("949.95"))
        self.recorder.record_fill(self.fill(T0 + 1, OrderSide.SELL, None), "BTC", Decimal(0), "USDT",
                                  Decimal("1000"))
        self.recorder.record_equity(T0, Decimal("1000.00"))
        with tempfile.TemporaryDirectory() as tmp:
            paths = self.recorder.save(os.path.join(tmp, "out"))
            trades = pd.read_csv(paths["trades"], dtype=str, keep_default_na=False)
            equity = pd.read_csv(paths["equity"], dtype=str)
        self.assertEqual(list(trades.columns)[:4], ["timestamp", "pair", "side", "price"])
        self.assertEqual(trades.loc[0, "price"], "100.10")
        self.assertEqual(trades.loc[0, "base_balance"], "0.4999")
        self.assertEqual(trades.loc[1, "side"], "SELL")
        self.assertEqual(trades.loc[1, "order_id"], "")
        self.assertEqual(equity.loc[0, "equity"], "1000.00")

    def test_empty_frames(self):
        trades, equity = self.recorder.to_frames()
        self.assertTrue(trades.empty)
        self.assertTrue(equity.empty)
        self.assertIn("quote_balance", trades.columns)


if __name__ == "__main__":
    unittest.main()
