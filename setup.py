#!/usr/bin/env python3
"""
Setup configuration for spot-ripper
Rip Spotify tracks and playlists to tagged MP3 files
"""

from setuptools import setup, find_packages

# Read README for long description
with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

# Core requirements (always installed)
core_requirements = [
    "librespot>=0.0.9",
    "mutagen>=1.47.0",
    "rich-click>=1.7.0",
    "rich>=13.0.0",
    "pyyaml>=6.0.1",
    "requests>=2.31.0",
    "urllib3>=1.26.0",
    "tqdm>=4.66.1",
    "python-dotenv>=1.0.0",
    "Pillow>=10.0.0",
]

setup(
    name="spot-ripper",
    version="0.1.0",
    author="spot-ripper Team",
    description="Rip Spotify tracks and playlists to tagged MP3 files",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*"]),
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Environment :: Console",
        "Intended Audience :: End Users/Desktop",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Multimedia :: Sound/Audio",
    ],
    python_requires=">=3.10",
    install_requires=core_requirements,
    extras_require={
        "dev": [
            "pytest>=7.4.3",
        ],
    },
    entry_points={
        "console_scripts": [
            "spot-ripper=spot_ripper.cli:main",
        ],
    },
    keywords="spotify music download playlist mp3 id3 cli",
)
