#!/usr/bin/env python
# -*- coding: utf-8 -*-

import functools
import threading
from typing import Any, Callable, Optional, TypeVar

T = TypeVar('T')


def thread_lock(lock: Optional[threading.RLock] = None):
    """
    线程锁装饰器，支持传入自定义锁实例。

    Args:
        lock: 传入的锁实例。如果不传，则为每个函数自动生成一个可重入锁。

    Returns:
        Callable: 装饰后的函数
    """
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        _lock = lock or threading.RLock()

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> T:
            with _lock:
                return func(*args, **kwargs)
        return wrapper
    return decorator
