#!/usr/bin/env python
# -*- coding: utf-8 -*-
import importlib
from typing import List, Type

from multipair_core.utils import get_logger

from .component import Component

logger = get_logger(__name__)


def create_component(cls: Type[Component], **kwargs):
    """
    按组件声明的 init_params 转换参数并创建实例

    参数:
        cls: 组件类
        kwargs: 配置参数，未声明的参数忽略并告警
    返回:
        组件实例
    异常:
        ValueError: 缺少必填参数或参数取值非法
    """
    from multipair_core.models import Field
    declared: List[Field] = cls.init_params
    unknown = set(kwargs) - {f.name for f in declared}
    if unknown:
        logger.warning(f"{cls.__name__} 忽略未声明的参数: {sorted(unknown)}")
    params = {}
    for field in declared:
        if field.name in kwargs:
            params[field.name] = field.covert(kwargs[field.name])
        elif field.default is not None:
            params[field.name] = field.covert(field.default)
        elif field.required:
            raise ValueError(f"{cls.__name__} 缺少必填参数: {field.name}")
    return cls(**params)


def load_class_from_str(class_path: str):
    """
    通过 'module_path|ClassName' 字符串动态加载类对象
    """
    if "|" not in class_path:
        raise ValueError(f"类路径格式应为 'module|ClassName': {class_path}")
    module_path, class_name = class_path.split("|", 1)
    module = importlib.import_module(module_path)
    if not hasattr(module, class_name):
        raise ValueError(f"模块 {module_path} 中不存在类 {class_name}")
    return getattr(module, class_name)
