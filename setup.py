"""Setup configuration for Chill Bot Discord Bot."""

from setuptools import setup, find_packages

setup(
    name="chillbot",
    version="0.0.1",
    description="A Discord bot for discovering and joining opt-in channels",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    python_requires=">=3.11",
    install_requires=[
        "py-cord>=2.6",
        "python-dotenv>=1.0",
        "PyYAML>=6.0",
        "prompt_toolkit>=3.0",
        "azure-storage-blob>=12.19",
        "aiohttp>=3.9",
    ],
    extras_require={
        "test": [
            "pytest>=8.0",
            "pytest-asyncio>=0.23",
        ],
    },
    entry_points={
        "console_scripts": [
            "chillbot=chillbot.main:main",
        ],
    },
)
