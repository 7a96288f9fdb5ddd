"""
Setup configuration for adpulse package.
"""

from setuptools import setup, find_packages

setup(
    name="adpulse",
    version="0.1.0",
    description="Meta Ads insight aggregation and dashboard metrics",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.10",
    install_requires=[
        "fastapi>=0.110",
        "pydantic>=2.5",
        "python-dotenv>=1.0",
        "httpx>=0.27",
        "tenacity>=8.2",
        "click>=8.2",
        "slowapi>=0.1.9",
        "supabase>=2.0",
        "cryptography>=41.0",
        "uvicorn>=0.27",
    ],
    extras_require={
        "test": [
            "pytest>=7.4",
            "pytest-asyncio>=0.23",
        ],
    },
    entry_points={
        "console_scripts": [
            "adpulse=adpulse.cli.main:cli",
        ],
    },
)
