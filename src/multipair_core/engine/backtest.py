#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
回测运行器
"""
from typing import Any, Dict

from multipair_core.base import create_component, load_class_from_str
from multipair_core.data import DataCache, DataSource
from multipair_core.event import EventBus
from multipair_core.manager import DataManager
from multipair_core.models import END_OF_DATA, BacktestConfig, FundingRate, KLine
from multipair_core.strategy import Strategy
from multipair_core.utils import get_logger

from .base import Runner
from .result import RunResult

logger = get_logger(__name__)


def run_backtest(config: Dict[str, Any]) -> RunResult:
    """
    按字典配置运行回测

    config 字段与 BacktestConfig 一致，另外可以直接传入 data_source 实例代替 datasource_class。
    strategy_class/datasource_class 使用 "module|ClassName" 格式。
    """
    config = dict(config)
    data_source = config.pop("data_source", None)
    backtest_config = BacktestConfig(**config)
    if backtest_config.strategy_class is None:
        raise ValueError("缺少 strategy_class 配置")
    strategy = create_component(load_class_from_str(backtest_config.strategy_class),
                                **backtest_config.strategy_params)
    if data_source is None:
        if backtest_config.datasource_class is None:
            raise ValueError("缺少 datasource_class 或 data_source 配置")
        data_source = create_component(load_class_from_str(backtest_config.datasource_class),
                                       **backtest_config.datasource_config)
    runner = BacktestRunner(backtest_config, strategy, data_source)
    return runner.run()


class BacktestRunner(Runner):
    """
    回测运行器：数据管理器驱动事件，订单按K线撮合
    """

    def __init__(self, config: BacktestConfig, strategy: Strategy, data_source: DataSource, event_bus: EventBus = None):
        super().__init__(config, strategy, event_bus)
        if config.use_cache and not isinstance(data_source, DataCache):
            data_source = DataCache(data_source, cache_dir=config.cache_dir)
        self.data_source = data_source
        self.data_manager = DataManager(data_source, self.event_bus)

    def _order_manager_options(self) -> Dict[str, Any]:
        options = super()._order_manager_options()
        options["fill_price_policy"] = self.config.fill_price_policy
        options["volume_fill_ratio"] = self.config.volume_fill_ratio
        return options

    def prepare(self):
        self.data_source.on_start()
        for pair in self.config.pairs:
            self.data_manager.load(pair.symbol, pair.timeframe, self.config.start_time, self.config.end_time,
                                   funding=pair.funding)
        # 以各交易对首根K线开盘价估算初始权益
        first_prices = {}
        for pair in self.config.pairs:
            klines = self.data_manager.klines(pair.symbol)
            if klines:
                first_prices[pair.symbol] = klines[0].open
        self.initial_equity = self.asset_manager.total_equity(self.quote_currency, first_prices)
        logger.info(f"回测准备完成: 交易对 {self.data_manager.pairs}, 事件 {self.data_manager.total_events} 个, "
                    f"初始权益 {self.initial_equity} {self.quote_currency}")

    def _run_loop(self):
        while True:
            if self._check_stop():
                return
            event = self.data_manager.next()
            if event is END_OF_DATA:
                return
            if isinstance(event, KLine):
                self.process_kline(event)
            elif isinstance(event, FundingRate):
                self.process_funding(event)

    def on_stop(self):
        self.data_source.on_stop()
