"""
Setup configuration for adcomposer package.
"""

from setuptools import setup, find_packages

setup(
    name="adcomposer",
    version="0.1.0",
    description="LLM-driven audio ad composition with versioned voice, music and sound effects drafts",
    packages=find_packages(include=["adcomposer", "adcomposer.*"]),
    python_requires=">=3.9",
    install_requires=[
        "openai>=1.66",
        "redis>=5.0",
        "supabase>=2.0",
        "pydantic>=2.5",
        "python-dotenv>=1.0",
        "logfire>=2.0",
        "tenacity>=8.2",
        "fastapi>=0.110",
        "slowapi>=0.1.9",
        "uvicorn>=0.27",
        "click>=8.1",
        "rich>=13.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.4",
            "pytest-asyncio>=0.23",
            "fakeredis>=2.20",
            "httpx>=0.26",
        ],
    },
    entry_points={
        "console_scripts": [
            "adcomposer=adcomposer.cli.main:cli",
        ],
    },
)
