#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
SourceTrace: Contamination Source Traceback for Supply Networks

Bayesian traceback of foodborne contamination events on layered supply
networks, from detection times and product-volume flows.

Version: 0.1
License: MIT
"""

from setuptools import setup, find_packages
import os
import sys

# Ensure we can import version
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "sourcetrace"))

from version import __version__

# Read long description from README
readme_path = os.path.join(os.path.dirname(__file__), "README.md")
long_description = ""
if os.path.exists(readme_path):
    with open(readme_path, "r", encoding="utf-8") as f:
        long_description = f.read()

# Read requirements from requirements.txt
def read_requirements(filename):
    """Read requirements from file."""
    filepath = os.path.join(os.path.dirname(__file__), filename)
    if not os.path.exists(filepath):
        return []
    with open(filepath, "r") as f:
        return [line.strip() for line in f if line.strip() and not line.startswith("#")]

# Basic requirements (always installed)
install_requires = read_requirements("requirements.txt") or [
    "numpy>=1.24.0",
    "scipy>=1.9.0",
    "click>=8.0.0",
    "pyyaml>=6.0",
]

# Optional dependencies
extras_require = {
    "dev": read_requirements("requirements-dev.txt") or ["pytest>=7.0.0"],
}

# Convenience: install all optional dependencies
extras_require["all"] = extras_require.get("dev", [])

setup(
    name="sourcetrace",
    version=__version__,
    author="SourceTrace Development Team",
    description="Contamination source traceback for layered supply networks",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*"]),
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Science/Research",
        "Topic :: Scientific/Engineering",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Operating System :: OS Independent",
    ],
    python_requires=">=3.9",
    install_requires=install_requires,
    extras_require=extras_require,
    entry_points={
        "console_scripts": [
            "sourcetrace=sourcetrace.cli:main",
        ],
    },
    zip_safe=False,
    keywords="traceback outbreak supply-chain food-safety bayesian",
)
