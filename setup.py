#!/usr/bin/env python3
"""
yamemcache Setup Script
=======================
Allows installation of the yamemcache package.

Usage:
    pip install -e .           # Development install
    pip install -e .[test]     # Development install with test tools
    pip install .              # Regular install
"""

from setuptools import setup, find_packages

setup(
    name="yamemcache",
    version="0.1.0",
    description="Asyncio client for the memcached meta text protocol",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.10",
    extras_require={
        "test": [
            "pytest>=7.0",
            "pytest-asyncio>=0.21",
        ],
    },
    entry_points={
        "console_scripts": [
            "yamemcache=yamemcache.cli:main",
        ],
    },
)
