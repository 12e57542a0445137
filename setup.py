from setuptools import setup, find_packages

setup(
    name="skulk",
    version="0.1.0",
    description="MCP (Model Context Protocol) connection manager: tool discovery, routing and health checks",
    packages=find_packages(where=".", include=["skulk", "skulk.*"]),
    package_dir={"": "."},
    include_package_data=True,
    package_data={"skulk": ["data/*.json"]},
    install_requires=[
        "colorama",
        "python-dotenv",
        "rich",
    ],
    extras_require={
        "test": [
            "pytest",
            "pytest-asyncio",
        ],
    },
    entry_points={
        "console_scripts": [
            "skulk=skulk.cli:main",
        ],
    },
    python_requires=">=3.10",
    classifiers=[
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
)
