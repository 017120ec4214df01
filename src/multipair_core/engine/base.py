#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
运行器基类：回测与实盘共用的状态机、事件处理与意图路由。

状态流转: IDLE -> RUNNING -> COMPLETED / ABORTED，prepare 失败时 IDLE -> ABORTED。
"""
import copy
import dataclasses
from abc import ABC, abstractmethod
from types import MappingProxyType
from typing import Any, Dict, List, Optional

from multipair_core.errors import (
    FATAL_ERRORS,
    RECOVERABLE_ERRORS,
    DataError,
    InvariantViolation,
    ValidationError,
)
from multipair_core.event import Event, EventBus, EventSource, EventType
from multipair_core.executor.fee import FeeModel
from multipair_core.manager import AssetManager, ClosePositionPolicy, OrderManager
from multipair_core.models import (
    CancelIntent,
    EngineConfig,
    Fill,
    FillEvent,
    FundingRate,
    KLine,
    MarketSnapshot,
    Order,
    OrderIntent,
    Rejection,
    RunnerPhase,
    TradingPair,
)
from multipair_core.position import PositionTracker
from multipair_core.strategy import Strategy
from multipair_core.utils import IdGenerator, get_logger

from .performance import calculate_metrics
from .recorder import TradeRecorder
from .result import RunResult

logger = get_logger(__name__)

_TRANSITIONS = {
    RunnerPhase.IDLE: (RunnerPhase.RUNNING, RunnerPhase.ABORTED),
    RunnerPhase.RUNNING: (RunnerPhase.COMPLETED, RunnerPhase.ABORTED),
    RunnerPhase.COMPLETED: (),
    RunnerPhase.ABORTED: (),
}


class Runner(ABC):
    """
    运行器基类

    每个事件的处理顺序:
        更新标记价 -> 撮合(回测) -> 逐笔通知持仓/记录器/策略 on_fill
        -> 资金费结算与 on_funding -> on_tick -> 记录权益 -> 不变量检查
    策略返回的意图立即路由，可恢复异常记为拒单并回调 on_rejected。
    """

    def __init__(self, config: EngineConfig, strategy: Strategy, event_bus: EventBus = None):
        self.config = config
        self.strategy = strategy
        self.event_bus = event_bus or EventBus()
        self.quote_currency = config.quote_currency
        self.pairs: Dict[str, TradingPair] = {p.symbol: TradingPair.from_config(p) for p in config.pairs}
        self.recorder = TradeRecorder(self.event_bus)
        self.asset_manager = AssetManager(config.initial_capital, self.pairs, self.event_bus)
        self.fee_model = FeeModel(config.fee)
        self.order_manager = OrderManager(self.asset_manager, self.pairs, self.fee_model, self.event_bus,
                                          IdGenerator(), **self._order_manager_options())
        self.asset_manager.liquidation_policy = ClosePositionPolicy(self.order_manager, self.fee_model)
        self.tracker = PositionTracker(self.asset_manager, self.pairs)

        self.phase = RunnerPhase.IDLE
        self.current_time: Optional[int] = None
        self.abort_reason: Optional[str] = None
        self.initial_equity = None
        self.output_files: Dict[str, str] = {}
        self._stop_requested = False
        self._spot_funding_warned = set()
        self._source = EventSource.of(self)

    def _order_manager_options(self) -> Dict[str, Any]:
        return {"market_order_buffer": self.config.market_order_buffer}

    # ------------------------------------------------------------------ 状态机
    def _transition(self, phase: RunnerPhase):
        if phase not in _TRANSITIONS[self.phase]:
            raise InvariantViolation(f"运行器状态不能从 {self.phase.name} 变为 {phase.name}")
        logger.info(f"运行器状态: {self.phase.name} -> {phase.name}")
        self.phase = phase
        self.event_bus.publish_event(Event(EventType.RUNNER_PHASE, phase, self._source))

    def _abort(self, reason: str, error: BaseException = None):
        self.abort_reason = reason
        if error is not None:
            logger.error(f"运行中止: {reason}", exc_info=error)
        else:
            logger.warning(f"运行中止: {reason}")
        self._transition(RunnerPhase.ABORTED)

    def stop(self):
        """请求在下一个事件之前停止，运行结果为 ABORTED"""
        self._stop_requested = True

    def prepare(self):
        """加载数据等准备工作，DataError 会使运行在进入 RUNNING 之前中止"""
        ...

    @abstractmethod
    def _run_loop(self):
        """事件主循环，数据耗尽时正常返回"""
        pass

    def on_stop(self):
        """释放数据源/适配器等资源"""
        ...

    def run(self) -> RunResult:
        if self.phase != RunnerPhase.IDLE:
            raise InvariantViolation(f"运行器只能运行一次, 当前状态 {self.phase.name}")
        try:
            self.prepare()
        except DataError as e:
            self._abort(f"{type(e).__name__}: {e}", e)
            self.on_stop()
            return self.result()

        self._transition(RunnerPhase.RUNNING)
        self.strategy.on_start()
        try:
            self._run_loop()
        except FATAL_ERRORS as e:
            self._abort(f"{type(e).__name__}: {e}", e)
        except Exception as e:
            self._abort(f"{type(e).__name__}: {e}", e)
            raise
        else:
            if self.phase == RunnerPhase.RUNNING:
                self._complete()
        finally:
            self.strategy.on_stop()
            self.on_stop()
        return self.result()

    def _check_stop(self) -> bool:
        if self._stop_requested and self.phase == RunnerPhase.RUNNING:
            self._abort("stopped")
            return True
        return False

    def _complete(self):
        self.recorder.finalize()
        output_dir = getattr(self.config, "output_dir", None)
        if output_dir:
            self.output_files = self.recorder.save(output_dir)
        self._transition(RunnerPhase.COMPLETED)

    # ------------------------------------------------------------------ 事件处理
    def _advance_time(self, timestamp: int):
        if self.current_time is not None and timestamp < self.current_time:
            raise InvariantViolation(f"事件时间倒退: {timestamp} < {self.current_time}")
        self.current_time = timestamp

    def _ensure_initial_equity(self):
        if self.initial_equity is None:
            self.initial_equity = self.asset_manager.total_equity(self.quote_currency)

    def process_kline(self, kline: KLine, match: bool = True):
        self._advance_time(kline.timestamp)
        self.tracker.update_mark(kline.pair, kline.close, kline.timestamp)
        self._ensure_initial_equity()
        if match:
            for fill in self.order_manager.match(kline.pair, kline):
                self._handle_fill(fill)
        self._after_event(kline)

    def process_funding(self, funding: FundingRate):
        """
        结算永续交易对的资金费，position_qty 为带符号持仓(空头为负)

        现货交易对没有资金费，收到的资金费率只记录告警后跳过
        """
        self._advance_time(funding.timestamp)
        pair = self.pairs[funding.pair]
        if not pair.is_swap:
            if funding.pair not in self._spot_funding_warned:
                self._spot_funding_warned.add(funding.pair)
                logger.warning(f"{funding.pair} 是现货交易对, 忽略资金费率数据")
            self._after_event(funding)
            return
        if pair.mark_price is None:
            logger.warning(f"{funding.pair} 尚无标记价格, 跳过资金费结算 {funding.timestamp}")
            self._after_event(funding)
            return
        self._ensure_initial_equity()
        position_qty = self.tracker.position_qty(funding.pair)
        settlement = self.asset_manager.apply_funding(funding.pair, funding.rate, position_qty, pair.mark_price,
                                                      funding.timestamp)
        for fill in settlement.liquidation_fills:
            self.tracker.on_fill(fill)
            self._record_fill(fill)
        event = dataclasses.replace(settlement, snapshot=self.snapshot(funding))
        self._route(self.strategy.on_funding(event))
        self._after_event(funding)

    def _record_fill(self, fill: Fill):
        pair = self.pairs[fill.pair]
        self.recorder.record_fill(fill, pair.base, self.tracker.position_qty(fill.pair),
                                  pair.quote, self.asset_manager.total(pair.quote))

    def _handle_fill(self, fill: Fill):
        self.tracker.on_fill(fill)
        self._record_fill(fill)
        order = copy.copy(self.order_manager.get(fill.order_id))
        self._route(self.strategy.on_fill(FillEvent(fill=fill, order=order, snapshot=self.snapshot(fill))))

    def _after_event(self, event: Any, tick: bool = True):
        if tick:
            self._route(self.strategy.on_tick(self.snapshot(event)))
        self.recorder.record_equity(self.current_time, self.asset_manager.total_equity(self.quote_currency))
        if self.config.strict_invariants:
            self.asset_manager.verify(self.order_manager)

    def snapshot(self, event: Any = None) -> MarketSnapshot:
        pairs = {
            symbol: self.tracker.view(symbol, [copy.copy(o) for o in self.order_manager.active_orders(symbol)])
            for symbol in self.pairs
        }
        return MarketSnapshot(timestamp=self.current_time, quote_currency=self.quote_currency,
                              equity=self.asset_manager.total_equity(self.quote_currency),
                              balances=MappingProxyType(self.asset_manager.balances()),
                              pairs=MappingProxyType(pairs), event=event,
                              market_order_buffer=self.config.market_order_buffer)

    # ------------------------------------------------------------------ 意图路由
    def _route(self, intents: Optional[List[Any]]):
        for intent in intents or []:
            try:
                if isinstance(intent, CancelIntent):
                    self.on_order_canceled(self.order_manager.cancel(intent.order_id, self.current_time,
                                                                     reason="策略撤单"))
                elif isinstance(intent, OrderIntent):
                    order_id = self.order_manager.submit(intent, self.current_time)
                    self.on_order_submitted(self.order_manager.get(order_id))
                else:
                    raise ValidationError(f"无法识别的意图: {intent!r}")
            except RECOVERABLE_ERRORS as e:
                self._reject(intent, e)

    def _reject(self, intent: Any, error: Exception):
        rejection = Rejection(timestamp=self.current_time, intent=intent, error_type=type(error).__name__,
                              reason=str(error))
        logger.info(f"意图被拒绝: {rejection.error_type} {rejection.reason}")
        self.event_bus.publish_event(Event(EventType.ORDER_REJECTED, rejection, self._source))
        self.strategy.on_rejected(rejection)

    def on_order_submitted(self, order: Order):
        """订单创建后回调，实盘在此转发到交易所"""
        ...

    def on_order_canceled(self, order: Order):
        """策略撤单后回调"""
        ...

    # ------------------------------------------------------------------ 结果
    def result(self) -> RunResult:
        final_equity = self.asset_manager.total_equity(self.quote_currency)
        initial_equity = self.initial_equity if self.initial_equity is not None else final_equity
        equity_values = [value for _, value in self.recorder.equity_curve]
        return RunResult(
            phase=self.phase,
            abort_reason=self.abort_reason,
            trade_log=list(self.recorder.trades),
            equity_curve=list(self.recorder.equity_curve),
            rejections=list(self.recorder.rejections),
            final_balances=self.asset_manager.balances(),
            initial_equity=initial_equity,
            final_equity=final_equity,
            gaps=list(self.recorder.gaps),
            metrics=calculate_metrics(equity_values, initial_equity, final_equity, self.recorder.trades),
            output_files=dict(self.output_files),
        )
