"""
Recometry Python Client
Setup script for the recometry package

This package provides event collection over the Recometry real-time hub
and the recommend / predict ML endpoints.
"""

from setuptools import setup, find_packages

setup(
    name="recometry",
    version="0.1.0",
    description="Recometry event collection and ML client",
    author="Recometry",
    python_requires=">=3.10",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "aiohttp>=3.9.0",
        "loguru>=0.7.0",
        "pydantic>=2.4.0",
        "pysignalr>=1.0.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0.0",
            "pytest-asyncio>=0.21.0",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
)
