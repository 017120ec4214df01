#!/usr/bin/env python
# -*- coding: utf-8 -*-

from .component import Component
from .util import create_component, load_class_from_str

__all__ = ["Component", "create_component", "load_class_from_str"]
