#!/usr/bin/env python3
"""
Setup script for the neighborhood package.

- Pure Python; the batched path runs on whatever device torch provides.
- Test dependencies: pip install -e .[test]
"""

from pathlib import Path
from setuptools import setup, find_packages

project_root = Path(__file__).parent

setup(
    name="neighborhood",
    version="1.0.0",
    description="Local covariance, closed-form eigen33 and normals for organized point clouds",
    long_description=(project_root / "README.md").read_text(encoding="utf-8") if (project_root / "README.md").exists() else "",
    packages=find_packages(include=["neighborhood", "neighborhood.*"]),
    zip_safe=False,
    python_requires=">=3.8",
    install_requires=["numpy", "torch", "pyyaml", "matplotlib"],
    extras_require={"test": ["pytest"]},
)
