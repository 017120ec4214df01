#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
运行配置，字符串/数值在 __post_init__ 中统一转换为 Decimal、枚举和毫秒时间戳
"""
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from multipair_core.errors import ValidationError
from multipair_core.utils import DateTimeUtils, to_decimal

from .constants import FillPricePolicy, TimeFrame, TradeInsType


def _to_timestamp(value):
    if value is None or isinstance(value, int):
        return value
    if isinstance(value, (str, datetime)):
        return DateTimeUtils.to_timestamp(value)
    raise ValidationError(f"无法解析时间: {value!r}")


@dataclass
class PairConfig:
    """交易对配置，base/quote 缺省时按 "BASE-QUOTE" 格式从 symbol 拆分"""
    symbol: str
    base: str = None
    quote: str = None
    timeframe: TimeFrame = TimeFrame.M1
    ins_type: TradeInsType = TradeInsType.SPOT
    funding: bool = False
    # 下单数量与价格的小数位数，更细的意图在下单时截断
    quantity_precision: int = 8
    price_precision: int = 8
    # 永续合约杠杆倍数
    leverage: Decimal = Decimal(1)

    def __post_init__(self):
        if self.base is None or self.quote is None:
            parts = self.symbol.split("-")
            if len(parts) < 2:
                raise ValidationError(f"无法从交易对 {self.symbol} 解析基础币/计价币")
            self.base = self.base or parts[0]
            self.quote = self.quote or parts[1]
        if isinstance(self.timeframe, str):
            self.timeframe = TimeFrame.from_string(self.timeframe)
        if isinstance(self.ins_type, int):
            self.ins_type = TradeInsType(self.ins_type)
        elif isinstance(self.ins_type, str):
            self.ins_type = TradeInsType[self.ins_type.upper()]
        if self.base == self.quote:
            raise ValidationError(f"交易对 {self.symbol} 基础币与计价币相同")
        self.quantity_precision = int(self.quantity_precision)
        self.price_precision = int(self.price_precision)
        if self.quantity_precision < 0 or self.price_precision < 0:
            raise ValidationError(f"交易对 {self.symbol} 精度不能为负")
        self.leverage = to_decimal(self.leverage, "leverage")
        if self.leverage <= 0:
            raise ValidationError(f"交易对 {self.symbol} 杠杆倍数必须为正: {self.leverage}")


@dataclass
class FeeConfig:
    """
    手续费配置
    fee_type: 0 无手续费, 1 每笔固定(计价币), 2 按成交额比例, 3 按成交数量
    maker_fee 用于限价单成交，taker_fee 用于市价单和强平
    """
    fee_type: int = 2
    maker_fee: Decimal = Decimal("0.0002")
    taker_fee: Decimal = Decimal("0.0005")

    def __post_init__(self):
        self.fee_type = int(self.fee_type)
        if self.fee_type not in (0, 1, 2, 3):
            raise ValidationError(f"未知的手续费类型: {self.fee_type}")
        self.maker_fee = to_decimal(self.maker_fee, "maker_fee")
        self.taker_fee = to_decimal(self.taker_fee, "taker_fee")
        if self.maker_fee < 0 or self.taker_fee < 0:
            raise ValidationError("手续费率不能为负")


@dataclass
class EngineConfig:
    """回测与实盘共用的配置"""
    initial_capital: Dict[str, Decimal] = field(default_factory=dict)
    pairs: List[PairConfig] = field(default_factory=list)
    quote_currency: str = "USDT"
    fee: FeeConfig = field(default_factory=FeeConfig)
    # 市价买单按标记价额外冻结的比例
    market_order_buffer: Decimal = Decimal("0.05")
    strict_invariants: bool = True

    strategy_class: str = None
    strategy_params: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        self.initial_capital = {c: to_decimal(v, c) for c, v in (self.initial_capital or {}).items()}
        for currency, amount in self.initial_capital.items():
            if amount < 0:
                raise ValidationError(f"初始资金不能为负: {currency}={amount}")
        self.pairs = [p if isinstance(p, PairConfig) else PairConfig(**p) for p in (self.pairs or [])]
        if isinstance(self.fee, dict):
            self.fee = FeeConfig(**self.fee)
        self.market_order_buffer = to_decimal(self.market_order_buffer, "market_order_buffer")
        if self.market_order_buffer < 0:
            raise ValidationError("market_order_buffer 不能为负")
        symbols = [p.symbol for p in self.pairs]
        if len(symbols) != len(set(symbols)):
            raise ValidationError(f"交易对重复: {symbols}")
        if self.strategy_params is None:
            self.strategy_params = {}


@dataclass
class BacktestConfig(EngineConfig):
    """回测配置"""
    start_time: int = None
    end_time: int = None
    fill_price_policy: FillPricePolicy = FillPricePolicy.LIMIT_PRICE
    # 单根K线按成交量比例限制成交数量，None 表示不限制(全部成交或不成交)
    volume_fill_ratio: Optional[Decimal] = None

    datasource_class: str = None
    datasource_config: Dict[str, Any] = field(default_factory=dict)
    use_cache: bool = False
    cache_dir: str = ".cache"
    # 交易记录/权益曲线输出目录，None 不落盘
    output_dir: str = None

    def __post_init__(self):
        super().__post_init__()
        self.start_time = _to_timestamp(self.start_time)
        self.end_time = _to_timestamp(self.end_time)
        if isinstance(self.fill_price_policy, str):
            self.fill_price_policy = FillPricePolicy(self.fill_price_policy.lower())
        if self.volume_fill_ratio is not None:
            self.volume_fill_ratio = to_decimal(self.volume_fill_ratio, "volume_fill_ratio")
            if self.volume_fill_ratio <= 0:
                raise ValidationError("volume_fill_ratio 必须大于0")
        if self.datasource_config is None:
            self.datasource_config = {}
        if self.start_time is not None and self.end_time is not None and self.start_time > self.end_time:
            raise ValidationError(f"开始时间晚于结束时间: {self.start_time} > {self.end_time}")


@dataclass
class LiveConfig(EngineConfig):
    """实盘配置，连接参数由交易所适配器自行持有"""
    adapter_class: str = None
    adapter_config: Dict[str, Any] = field(default_factory=dict)
    # 行情队列空闲等待秒数，超时后继续检查停止标记
    poll_timeout: float = 1.0

    def __post_init__(self):
        super().__post_init__()
        if self.adapter_config is None:
            self.adapter_config = {}
