#!/usr/bin/env python
# -*- coding: utf-8 -*-

import json
import logging
import os
import tempfile
import unittest
from decimal import Decimal
from unittest import mock

from multipair_core.models import Fill, LiquidityType, OrderSide
from multipair_core.utils import get_logger, setup_logging
from multipair_core.utils.logging import LogFormat, LogLevel
from multipair_core.utils.logging.config import LogConfig
from multipair_core.utils.logging.formatters import JsonFormatter, TextFormatter, create_formatter


class ListHandler(logging.Handler):
    def __init__(self):
        super().__init__()
        self.records = []

    def emit(self, record):
        self.records.append(record)


class TestLogging(unittest.TestCase):
    """测试日志配置"""

    def tearDown(self):
        setup_logging(level="INFO", console=True, format_type="text")

    def test_external_handler(self):
        """测试外部处理器能收到日志"""
        handler = ListHandler()
        setup_logging(level="DEBUG", console=False, external_handlers=[handler])
        get_logger("multipair.test").info("hello %s", "world")
        messages = [r.getMessage() for r in handler.records]
        self.assertIn("hello world", messages)

    def test_level_filter(self):
        handler = ListHandler()
        setup_logging(level=LogLevel.WARNING, console=False, external_handlers=[handler])
        logger = get_logger("multipair.test.level")
        logger.info("ignored")
        logger.warning("kept")
        messages = [r.getMessage() for r in handler.records]
        self.assertNotIn("ignored", messages)
        self.assertIn("kept", messages)

    def test_file_output(self):
        """测试滚动文件输出"""
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "sub", "run.log")
            setup_logging(level="INFO", console=False, file=True, file_path=path)
            get_logger("multipair.test.file").info("to file")
            for handler in logging.getLogger().handlers:
                handler.close()
            setup_logging(level="INFO", console=False, file=False, file_path=None)
            with open(path, encoding="utf-8") as f:
                self.assertIn("to file", f.read())

    def test_json_formatter(self):
        """测试JSON格式包含 extra 字段且能序列化 Decimal"""
        record = logging.LogRecord("multipair", logging.INFO, __file__, 1, "price %s", ("ok",), None)
        record.price = Decimal("1.25")
        data = json.loads(JsonFormatter().format(record))
        self.assertEqual(data["message"], "price ok")
        self.assertEqual(data["level"], "INFO")
        self.assertEqual(data["price"], "1.25")

    def test_json_formatter_dataclass_extra(self):
        fill = Fill(order_id=1, pair="BTC-USDT", side=OrderSide.BUY, price=Decimal("100"), quantity=Decimal("0.5"),
                    fee=Decimal(0), fee_currency="BTC", timestamp=1704067200000, liquidity=LiquidityType.MAKER)
        record = logging.LogRecord("multipair", logging.INFO, __file__, 1, "filled", (), None)
        record.fill = fill
        record.handle = object()
        data = json.loads(JsonFormatter().format(record))
        self.assertEqual(data["fill"]["side"], "BUY")
        self.assertEqual(data["fill"]["price"], "100")
        self.assertEqual(data["fill"]["liquidity"], "MAKER")
        self.assertTrue(data["handle"].startswith("<object"))

    def test_create_formatter(self):
        self.assertIsInstance(create_formatter(LogFormat.JSON), JsonFormatter)
        self.assertIsInstance(create_formatter(LogFormat.TEXT), TextFormatter)
        self.assertIsInstance(create_formatter(LogFormat.SIMPLE), TextFormatter)

    def test_from_string(self):
        self.assertEqual(LogLevel.from_string("debug"), LogLevel.DEBUG)
        self.assertEqual(LogLevel.from_string("unknown"), LogLevel.INFO)
        self.assertEqual(LogFormat.from_string("json"), LogFormat.JSON)

    def test_env_config(self):
        """测试环境变量覆盖默认配置"""
        env = {"MULTIPAIR_LOG_LEVEL": "error", "MULTIPAIR_LOG_FORMAT": "json", "MULTIPAIR_LOG_CONSOLE": "false"}
        with mock.patch.dict(os.environ, env):
            config = LogConfig()
        self.assertEqual(config.get("level"), LogLevel.ERROR)
        self.assertEqual(config.get("format_type"), LogFormat.JSON)
        self.assertFalse(config.get("console_output"))


if __name__ == "__main__":
    unittest.main()
