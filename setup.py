from setuptools import setup, find_packages

setup(
    name="qbot",
    version="0.1.0",
    packages=find_packages(include=["qbot", "qbot.*"]),
    python_requires=">=3.11",
    install_requires=[
        "fastapi",
        "pydantic",
        "pydantic-settings",
        "sqlalchemy[asyncio]>=2.0",
        "asyncpg",
        "httpx",
        "openai",
    ],
    extras_require={
        "test": [
            "pytest",
            "pytest-asyncio",
            "aiosqlite",
        ],
    },
)
