# setup.py
from setuptools import setup, find_packages

setup(
    name="swipe_deck",
    version="0.1.0",
    description="SwipeDeck: ordered web page registry with a live session cache",
    packages=find_packages(include=["swipe_deck", "swipe_deck.*"]),
    install_requires=[
        "aiohttp>=3.9",
        "beautifulsoup4>=4.12",
        "click>=8.1",
        "pydantic>=2.5",
        "PyYAML>=6.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.4",
            "pytest-asyncio>=0.23",
        ],
    },
    entry_points={
        "console_scripts": [
            "swipe-deck=swipe_deck.cli:cli",
        ],
    },
    python_requires=">=3.11",
)
