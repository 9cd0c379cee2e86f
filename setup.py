from setuptools import setup, find_packages

setup(
    name="mercado-inventory",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.9",
    install_requires=[
        "fastapi>=0.115",
        "python-jose[cryptography]",
        "sqlalchemy[asyncio]>=2.0",
        "asyncpg",
        "pydantic>=2",
        "aio-pika",
        "tenacity",
    ],
    extras_require={
        "test": [
            "pytest",
            "aiosqlite",
            "httpx",
        ],
    },
)
