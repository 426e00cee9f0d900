"""
Setup script for frflow.

frflow is a terminal companion for learning French. It serves three roles:

1. Lesson Generator - CEFR-levelled lessons from Gemini or OpenAI
2. Notebook - a deduplicated archive of vocabulary, grammar and texts
3. Reviewer - interval-ladder spaced repetition over the notebook

The notebook lives on the device until the learner signs in, after which
the remote document store is used.
"""

from setuptools import find_packages, setup

setup(
    name="frflow",
    version="0.1.0",
    description="French lesson generator with a deduplicated spaced-repetition notebook",
    long_description=open("README.md", encoding="utf-8").read() if __import__("os").path.exists("README.md") else "",
    long_description_content_type="text/markdown",
    author="frflow",
    packages=find_packages(exclude=["tests", "tests.*"]),
    py_modules=["config"],
    python_requires=">=3.10",
    install_requires=[
        # CLI
        "typer>=0.9.0",
        "rich>=13.0.0",
        # Config & Validation
        "pydantic>=2.0.0",
        "pydantic-settings>=2.0.0",
        # HTTP
        "httpx>=0.25.0",
        # Logging
        "loguru>=0.7.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-asyncio>=0.21.0",
            "pytest-cov>=4.0.0",
            "ruff>=0.1.0",
            "mypy>=1.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "frflow=frflow.cli.main:main",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Environment :: Console",
        "Intended Audience :: Education",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Education",
        "Topic :: Education :: Computer Aided Instruction (CAI)",
    ],
    keywords="french language-learning spaced-repetition cli",
)
