"""Setup script for the floorhub package."""

from setuptools import find_packages, setup

setup(
    name="floorhub",
    version="0.1.0",
    description="Bridge from BLE floor sensor devices to MQTT",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.9",
    install_requires=[
        "pyyaml",
        "python-dotenv",
        "paho-mqtt>=2.0.0",
        "bleak",
        "rich",
    ],
    extras_require={
        "dev": [
            "pytest",
            "pytest-asyncio",
            "black",
            "isort",
            "mypy",
        ],
    },
    entry_points={
        "console_scripts": [
            "floorhub-bridge=floorhub.floor_bridge:main",
            "floorhub-scan=floorhub.floor_bridge:scan",
        ],
    },
)
