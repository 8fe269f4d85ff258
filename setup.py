"""
Setup script for natives-loader

Pure Python package; native libraries are supplied by the applications that
use it, either as package resources or inside a natives archive.
"""

from pathlib import Path
from setuptools import setup, find_packages


# Read version from src/natives/__init__.py
def get_version():
    version_file = Path("src/natives/__init__.py")
    if version_file.exists():
        for line in version_file.read_text().splitlines():
            if line.startswith("__version__"):
                return line.split("=")[1].strip().strip('"').strip("'")
    return "0.1.0"


# Read long description from README
def get_long_description():
    readme = Path("README.md")
    if readme.exists():
        return readme.read_text(encoding="utf-8")
    return ""


setup(
    name="natives-loader",
    version=get_version(),
    description="Extract and load platform-specific native shared libraries",
    long_description=get_long_description(),
    long_description_content_type="text/markdown",
    license="Apache-2.0",
    package_dir={"": "src"},
    packages=find_packages("src"),
    python_requires=">=3.9",
    install_requires=[
        'tomli>=1.1; python_version < "3.11"',
    ],
    extras_require={
        "test": ["pytest>=7"],
    },
    entry_points={
        "console_scripts": [
            "natives = natives.cli:main",
        ],
    },
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: Apache Software License",
        "Operating System :: OS Independent",
    ],
    zip_safe=False,  # Extracted libraries must live on a real filesystem
)
