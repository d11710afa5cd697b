from setuptools import setup
from pathlib import Path

this_directory = Path(__file__).parent
long_description = (this_directory / "README.md").read_text(encoding="utf-8")

setup(
    name="humanclicker",
    version="0.3.0",
    description="Randomized auto-clicker that stays out of the way of real user input",
    long_description=long_description,
    long_description_content_type="text/markdown",
    author="SennePieters",
    author_email="senne.pieters02@gmail.com",
    packages=["humanclicker", "humanclicker.activity", "humanclicker.clicker"],
    install_requires=[
        "zendriver",
        "Pillow",
        "pynput",
    ],
    extras_require={
        "test": ["pytest", "pytest-asyncio"],
    },
    entry_points={
        "console_scripts": ["humanclicker=humanclicker.__main__:main"],
    },
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
    ],
    python_requires=">=3.9",
)
