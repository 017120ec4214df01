#!/usr/bin/env python
# -*- coding: utf-8 -*-

from .tracker import PositionState, PositionTracker

__all__ = ["PositionState", "PositionTracker"]
