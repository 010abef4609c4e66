#!/usr/bin/env python3
"""Setup configuration for sntp-probe package."""

from setuptools import setup, find_packages
from pathlib import Path

# Read long description from README
readme_path = Path(__file__).parent / "README.md"
long_description = readme_path.read_text() if readme_path.exists() else ""

setup(
    name="sntp-probe",
    version="1.0.0",
    description="One-shot SNTP (RFC 5905) clock offset measurement",
    long_description=long_description,
    long_description_content_type="text/markdown",
    license="MIT",
    
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    
    python_requires=">=3.9",
    
    install_requires=[
        "numpy>=1.20.0",
        "toml>=0.10.0",
    ],
    
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-cov>=3.0.0",
        ],
    },
    
    entry_points={
        "console_scripts": [
            "sntp-probe=sntp_probe.main:main",
        ],
    },
    
    classifiers=[
        "Development Status :: 4 - Beta",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Topic :: System :: Networking :: Time Synchronization",
    ],
    
    keywords="ntp sntp time synchronization clock offset",
)
