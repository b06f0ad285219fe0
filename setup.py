#!/usr/bin/env python3
"""Setup script for PR Pilot."""

from pathlib import Path

from setuptools import find_packages
from setuptools import setup


# Read the README file
this_directory = Path(__file__).parent
long_description = (this_directory / "README.md").read_text(encoding="utf-8")

setup(
    name="prpilot",
    version="1.0.0",
    author="PR Pilot Team",
    description="AI-assisted pull requests from GitHub diffs and Jira tickets, served to agents over MCP and REST",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    python_requires=">=3.11",
    install_requires=[
        "aiohttp>=3.9.0",
        "pyyaml>=6.0",
        "click>=8.1.0",
        "prometheus-client>=0.17.0",
        "returns>=0.22.0",
        "pydantic>=2.0.0",
        "rich>=13.0.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.4.0",
            "pytest-asyncio>=0.21.0",
            "pytest-cov>=4.1.0",
            "hypothesis>=6.80.0",
            "mypy>=1.5.0",
            "ruff>=0.1.0",
        ],
        "test": [
            "pytest>=7.4.0",
            "pytest-asyncio>=0.21.0",
            "pytest-cov>=4.1.0",
            "hypothesis>=6.80.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "prpilot=prpilot.cli:main",
            "prpilot-mcp=prpilot.mcp_server:run",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Topic :: Software Development :: Version Control :: Git",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
)
