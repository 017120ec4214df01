#!/usr/bin/env python
# -*- coding: utf-8 -*-
from typing import TYPE_CHECKING, Any, Dict, List

if TYPE_CHECKING:
    from multipair_core.models import Field


class Component:
    """
    可配置组件基类，策略、数据源、交易适配器均继承自该类。
    display_name/init_params 用于按配置动态创建实例。
    """
    display_name: str = None
    init_params: List["Field"] = []

    def on_start(self):
        """
        启动组件
        """
        ...

    def on_stop(self):
        """
        停止组件，释放资源
        """
        ...

    def get_state(self) -> Dict[str, Any]:
        """
        序列化组件状态
        """
        return {}

    def load_state(self, state: Dict[str, Any]):
        """
        加载组件状态
        """
        ...
