#!/usr/bin/env python3
"""
Setup script for slim-memory.
"""

from setuptools import setup, find_packages
from pathlib import Path

# Read README
readme_file = Path(__file__).parent / "README.md"
long_description = readme_file.read_text() if readme_file.exists() else ""

# Read requirements
requirements_file = Path(__file__).parent / "requirements.txt"
requirements = []
if requirements_file.exists():
    requirements = [
        line.strip()
        for line in requirements_file.read_text().splitlines()
        if line.strip() and not line.startswith("#")
    ]

setup(
    name="slim-memory",
    version="1.0.0",
    description="Caching facade over Memcached and Redis with tags, prefixes and a local read buffer",
    long_description=long_description,
    long_description_content_type="text/markdown",
    author="slim-memory Contributors",
    packages=find_packages(include=["slim_memory", "slim_memory.*"]),
    include_package_data=True,
    python_requires=">=3.10",
    install_requires=requirements or [
        "pymemcache>=4.0.0",
        "redis>=5.0.0",
        "click>=8.1.0",
        "pyyaml>=6.0",
        "python-dotenv>=1.0.0",
    ],
    extras_require={
        "msgpack": [
            "msgpack>=1.0.0",
        ],
        "dev": [
            "pytest>=7.4.0",
            "pytest-cov>=4.1.0",
            "msgpack>=1.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "mem=slim_memory.cli.__main__:main",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Database",
        "Topic :: Software Development :: Libraries",
    ],
    keywords="cache memcached redis tags facade",
)
