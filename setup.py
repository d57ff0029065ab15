from os import path

from setuptools import setup

this_dir = path.abspath(path.dirname(__file__))
with open(path.join(this_dir, "README.md"), encoding="utf8") as f:
    long_description = f.read()

setup(
    name="ArtMarket",
    description="ArtMarket - art piece marketplace API on Cosmos DB and Redis",
    long_description=long_description,
    long_description_content_type="text/markdown",
    version="0.3",
    license="MIT",
    packages=[
        "artmarket",
        "artmarket.core",
        "artmarket.routes",
        "artmarket.services",
        "artmarket.test",
    ],
    keywords=["artmarket", "marketplace", "cosmosdb", "redis", "fastapi"],
    python_requires=">=3.9",
    install_requires=[
        "fastapi",
        "uvicorn",
        "pydantic>=2",
        "colorama",
        "tenacity",
        "redis>=5",
        "azure-cosmos>=4.5",
        "aiohttp",
        "python-jose",
        "passlib",
        "httpx",
    ],
    extras_require={
        "test": [
            "pytest",
            "pytest-asyncio",
        ],
    },
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3.9",
    ],
    entry_points={
        "console_scripts": [
            "artmarket = artmarket.command:console_main",
        ]
    },
)
