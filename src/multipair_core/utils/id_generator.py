# -*- coding: utf-8 -*-
"""
顺序数字ID生成工具。
同一生成器内ID严格递增且不复用，回放时从相同起点生成相同的ID序列，保证回测可复现。
"""
import threading


class IdGenerator:
    """
    顺序ID生成器（线程安全）。
    每个运行实例持有独立的生成器，互不干扰。
    """

    def __init__(self, start: int = 1):
        if start < 0:
            raise ValueError("start 必须为非负整数")
        self._start = start
        self._next = start
        self._lock = threading.Lock()

    def next_id(self) -> int:
        """
        获取下一个ID
        :return: int
        """
        with self._lock:
            id_ = self._next
            self._next += 1
            return id_

    def peek(self) -> int:
        """下一个将被分配的ID，不消耗序列"""
        return self._next

    def reset(self):
        with self._lock:
            self._next = self._start


_id_generator = IdGenerator()


def generate() -> int:
    return _id_generator.next_id()


def generate_str() -> str:
    return str(generate())
