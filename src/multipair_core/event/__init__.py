#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
事件模块
"""

from .bus import EventBus
from .types import Event, EventSource, EventType

__all__ = ["EventBus", "Event", "EventSource", "EventType"]
