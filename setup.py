#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
multipair-core 多交易对回测/实盘执行框架安装配置
"""

import os
from setuptools import setup, find_packages

# 读取README文件
with open(os.path.join(os.path.dirname(__file__), 'README.md'), 'r', encoding='utf-8') as f:
    long_description = f.read()

# 读取依赖
def parse_requirements(filename):
    with open(os.path.join(os.path.dirname(__file__), filename), encoding="utf-8") as f:
        return [line.strip() for line in f if line.strip() and not line.startswith("#")]

requirements = parse_requirements("requirements.txt")

# 测试依赖
test_requirements = [
    'pytest>=6.0.0',
    'pytest-cov>=2.12.0',
]

extras_require = {
    'test': test_requirements,
}

setup(
    name='multipair-core',
    version='0.1.0',
    description='多交易对回测与实盘执行框架：行情归并、订单撮合、多币种账本与运行器状态机',
    long_description=long_description,
    long_description_content_type='text/markdown',
    package_dir={'': 'src'},
    packages=find_packages(where='src', exclude=['tests', 'tests.*']),
    include_package_data=True,
    install_requires=requirements,
    extras_require=extras_require,
    python_requires='>=3.8',
    classifiers=[
        'Development Status :: 3 - Alpha',
        'Intended Audience :: Developers',
        'Intended Audience :: Financial and Insurance Industry',
        'Natural Language :: Chinese (Simplified)',
        'Operating System :: OS Independent',
        'Programming Language :: Python :: 3',
        'Topic :: Office/Business :: Financial :: Investment',
        'Topic :: Software Development :: Libraries :: Python Modules',
    ],
    keywords='quantitative trading, backtest, multi pair, rebalance, funding rate, event-driven',
)
