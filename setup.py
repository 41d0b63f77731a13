"""Setup configuration for liveviews."""

from setuptools import setup, find_packages
from pathlib import Path

# Read README for long description
readme_file = Path(__file__).parent / "README.md"
long_description = readme_file.read_text(encoding="utf-8") if readme_file.exists() else ""

setup(
    name="liveviews",
    version="0.3.0",
    author="liveviews Team",
    description="Stateful interactive chat views with an expiring cache and durable state",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(include=["liveviews", "liveviews.*"]),
    python_requires=">=3.10",
    install_requires=[
        "aiogram>=3.4.0",
        "redis>=5.0.1",
        "prometheus-client>=0.17.0",
        "pyyaml>=6.0",
        "python-dotenv>=1.0.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.4.0",
            "pytest-asyncio>=0.23.0",
            "pytest-cov>=4.1.0",
            "black>=23.0.0",
            "flake8>=6.0.0",
            "mypy>=1.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "liveviews-bot=liveviews.main:main",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Framework :: AsyncIO",
        "Topic :: Communications :: Chat",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
    keywords="telegram aiogram bot views cache asyncio",
)
