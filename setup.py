"""
Setup script for comprehension-gate.

The comprehension gate asks a reader to demonstrate they read an
external article before resharing it:

1. Reading Tracker - Per-block coverage and dwell over the article
2. Unlock Policy - Read-ratio threshold with velocity violation detection
3. Gate Quiz - Source/user-text question mix decided by the text classifier

The 'gate' command provides QA tooling (classification, segmentation,
session replay and telemetry inspection).
"""

from setuptools import find_packages, setup

setup(
    name="comprehension-gate",
    version="1.0.0",
    description="Reading-comprehension gate for resharing external content",
    long_description=open("README.md", encoding="utf-8").read() if __import__("os").path.exists("README.md") else "",
    long_description_content_type="text/markdown",
    author="Right Learning",
    packages=find_packages(exclude=["tests", "tests.*"]),
    py_modules=["config"],
    python_requires=">=3.11",
    install_requires=[
        # CLI
        "typer>=0.9.0",
        "rich>=13.0.0",
        # Database
        "sqlalchemy>=2.0.0",
        # Config & Validation
        "pydantic>=2.0.0",
        "pydantic-settings>=2.0.0",
        # Logging
        "loguru>=0.7.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-cov>=4.0.0",
            "ruff>=0.1.0",
            "mypy>=1.0.0",
        ],
        "postgres": [
            "psycopg2-binary>=2.9.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "gate=src.cli.gate_cli:run",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Environment :: Console",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
    keywords="reading comprehension quiz gate telemetry",
)
