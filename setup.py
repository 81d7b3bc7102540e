from setuptools import setup, find_packages

setup(
    name="studio",
    version="0.1.0",
    packages=find_packages(include=["studio", "studio.*"]),
    python_requires=">=3.11",
    install_requires=[
        "fastapi>=0.110",
        "starlette",
        "uvicorn[standard]",
        "pydantic>=2.5",
        "pydantic-settings>=2.1",
        "sqlalchemy[asyncio]>=2.0",
        "asyncpg",
        "httpx>=0.27",
        "redis>=5.0.1",
    ],
    extras_require={
        "test": [
            "pytest",
            "pytest-asyncio",
            "respx",
            "aiosqlite",
        ],
    },
)
