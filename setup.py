#!/usr/bin/env python3
"""
file-kv Setup Script
====================
Allows installation of the file-kv package.

Usage:
    pip install -e .           # Development install
    pip install -e .[test]     # Development install with test tools
    pip install .              # Regular install
"""

from setuptools import setup, find_packages

setup(
    name="file-kv",
    version="1.0.0",
    packages=find_packages(include=["filekv", "filekv.*"]),
    python_requires=">=3.10",
    install_requires=[
        "aiofiles>=23.2",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
            "pytest-asyncio>=0.21",
        ],
    },
    entry_points={
        "console_scripts": [
            "file-kv=filekv.server:main",
            "file-kv-client=filekv.client:main",
        ],
    },
)
