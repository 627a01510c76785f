"""
Setuptools build script for cmdai.

This file allows installation of the ``cmdai`` package via
``pip install .``.  It declares the required dependencies and
registers a console script entry point named ``cmdai``.  When
installed, users can invoke the CLI with ``cmdai`` from their shell.

Test dependencies are available through the ``test`` extra:
``pip install -e .[test]``.
"""

from setuptools import setup, find_packages

setup(
    name="cmdai",
    version="0.1.0",
    description="AI-powered CLI assistant translating natural language to tool commands",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.8",
    install_requires=[
        "click>=7.0",
        "PyYAML>=5.4",
        "fastapi>=0.80",
        "uvicorn>=0.20",
        "httpx>=0.23",
        "python-dotenv>=0.21",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "cmdai=cmdai.cli:main",
        ],
    },
    include_package_data=True,
    package_data={"cmdai": ["data/patterns/*.yaml"]},
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
    ],
)
