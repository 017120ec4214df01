#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
multipair-core
"""
from importlib.metadata import PackageNotFoundError, version


def get_version() -> str:
    """读取已安装包的版本信息"""
    try:
        return version("multipair-core")
    except PackageNotFoundError:
        # 源码目录直接运行（未安装）时返回默认版本
        return "0.1.0"


__version__ = get_version()
