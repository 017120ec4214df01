#!/usr/bin/env python
# -*- coding: utf-8 -*-
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from multipair_core.utils import DateTimeUtils, to_decimal


class FieldType(Enum):
    """字段类型"""
    STRING = "string"
    INT = "int"
    FLOAT = "float"
    BOOLEAN = "boolean"
    DATETIME = "datetime"
    RADIO = "radio"
    SELECT = "select"


class ChoiceType(Enum):
    """可选值类型"""
    STRING = "string"
    INT = "int"
    FLOAT = "float"
    BOOLEAN = "boolean"


@dataclass
class Field:
    """
    用于声明组件参数的类。
    """
    name: str  # 字段名称
    label: str = None  # 显示名称，默认为name
    description: str = ""  # 字段描述
    type: FieldType = FieldType.STRING  # 入参类型
    default: Any = None  # 默认值
    min: float = None  # 最小值，仅适用于 int、float
    max: float = None  # 最大值，仅适用于 int、float
    required: bool = False  # 是否必传
    choices: list = field(default_factory=list)  # 可选值列表，仅适用于radio和select
    choice_type: ChoiceType = None  # 可选值类型，仅适用于radio和select

    def __post_init__(self):
        if self.label is None:
            self.label = self.name

    def covert(self, value: Any) -> Any:
        """
        将配置值转换为声明的类型，并校验取值范围。
        """
        if self.type in [FieldType.RADIO, FieldType.SELECT]:
            if self.choice_type is not None:
                value = self.covert_value(FieldType(self.choice_type.value), value)
            allowed = [c[0] if isinstance(c, tuple) else c for c in self.choices]
            if allowed and value not in allowed:
                raise ValueError(f"参数 {self.name} 取值 {value!r} 不在可选范围 {allowed}")
            return value
        value = self.covert_value(self.type, value)
        if value is not None and self.type in (FieldType.INT, FieldType.FLOAT):
            if self.min is not None and value < to_decimal(self.min):
                raise ValueError(f"参数 {self.name} 取值 {value} 小于最小值 {self.min}")
            if self.max is not None and value > to_decimal(self.max):
                raise ValueError(f"参数 {self.name} 取值 {value} 大于最大值 {self.max}")
        return value

    @staticmethod
    def covert_value(tp: FieldType, value: Any) -> Any:
        """
        将字符串值转换为指定类型。
        """
        if value is None:
            return None
        if isinstance(value, Enum):
            return Field.covert_value(tp, value.value)

        if tp == FieldType.STRING:
            return str(value)

        if tp == FieldType.INT:
            return int(value)

        if tp == FieldType.FLOAT:
            return to_decimal(value)

        if tp == FieldType.BOOLEAN:
            if isinstance(value, str):
                return value.strip().lower() in ("true", "on", "open", "1", "yes")
            return bool(value)

        if tp == FieldType.DATETIME:
            if isinstance(value, datetime):
                return value
            return DateTimeUtils.to_datetime(DateTimeUtils.to_timestamp(value))
        return value
