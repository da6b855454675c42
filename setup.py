"""GlyphLedger setup - Offline verifiable transfer ledger for glyph artifacts."""
from setuptools import setup, find_packages

setup(
    name="glyphledger",
    version="1.0.0",
    description="GlyphLedger: offline verifiable custody ledger embedded in glyph files",
    package_dir={"": "src"},
    packages=find_packages("src"),
    python_requires=">=3.10",
    install_requires=[
        "click>=8.0",
        "cryptography>=41.0",
        "requests>=2.28",
        "base58>=2.1",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "glyph=glyphledger.cli.main:cli",
        ],
    },
)
