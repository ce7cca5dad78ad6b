"""Setup configuration for AssetGuard."""

from setuptools import setup, find_packages

setup(
    name="assetguard",
    version="0.1.0",
    description="Upload moderation and strike escalation for a user-generated-content marketplace",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    python_requires=">=3.11",
    install_requires=[
        "aiosqlite",
        "PyYAML",
        "openai",
        "jsonschema",
        "requests",
        "python-dotenv",
        "prompt_toolkit",
    ],
    extras_require={
        "test": [
            "pytest",
            "pytest-asyncio",
        ],
    },
    entry_points={
        "console_scripts": [
            "assetguard=assetguard.main:main",
        ],
    },
)
