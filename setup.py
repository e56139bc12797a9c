#!/usr/bin/env python3
# =============================================================================
#  cppcheckdata-reduce — setup.py
#
#  Program-reduction passes driven by Cppcheck dump files.
#
#      pip install -e ".[dev]"
#      python -m pytest
#
#  The passes read dumps through the ``cppcheckdata`` module that ships in
#  Cppcheck's addons/ directory. It is not on PyPI and is therefore not
#  listed below; put the addons directory on PYTHONPATH.
# =============================================================================

from __future__ import annotations

import re
from pathlib import Path

from setuptools import setup, find_packages

_HERE = Path(__file__).resolve().parent


def _read_version() -> str:
    """Extract ``__version__`` from the package so there is one source of truth."""
    init = _HERE / "cppcheckdata_reduce" / "__init__.py"
    text = init.read_text(encoding="utf-8")
    match = re.search(r'^__version__\s*=\s*"([^"]+)"', text, re.MULTILINE)
    if match:
        return match.group(1)
    return "0.0.0"


def _read_long_description() -> str:
    """Read README.md for the long description."""
    readme = _HERE / "README.md"
    if readme.exists():
        return readme.read_text(encoding="utf-8")
    return ""


def _read_requirements() -> list[str]:
    """Read requirements.txt if it exists."""
    req_file = _HERE / "requirements.txt"
    if req_file.exists():
        lines = req_file.read_text(encoding="utf-8").splitlines()
        return [
            ln.strip()
            for ln in lines
            if ln.strip() and not ln.strip().startswith("#")
        ]
    return []


setup(
    name="cppcheckdata-reduce",
    version=_read_version(),
    description=(
        "Test-case reduction passes over Cppcheck dump files, starting "
        "with reduce-pointer-level."
    ),
    long_description=_read_long_description(),
    long_description_content_type="text/markdown",
    license="MIT",
    author="cppcheckdata-reduce contributors",
    python_requires=">=3.10",
    packages=find_packages(
        include=[
            "cppcheckdata_reduce",
            "cppcheckdata_reduce.*",
        ],
        exclude=[
            "tests",
            "tests.*",
        ],
    ),
    install_requires=_read_requirements(),
    extras_require={
        "dev": [
            "pytest>=7.0",
            "pytest-cov>=4.0",
            "ruff>=0.4",
            "mypy>=1.10",
        ],
    },
    entry_points={
        "console_scripts": [
            "cppcheck-reduce=cppcheckdata_reduce.main:main",
        ],
    },
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Programming Language :: Python :: 3.13",
        "Topic :: Software Development :: Quality Assurance",
        "Topic :: Software Development :: Testing",
        "Topic :: Software Development :: Compilers",
    ],
    keywords=[
        "cppcheck",
        "c-reduce",
        "test-case-reduction",
        "program-transformation",
    ],
    zip_safe=False,
)
