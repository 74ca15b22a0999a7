"""
deltapid - Bit-faithful delta-form PID speed controller model
Coefficient derivation, FP32 datapath reproduction and validation harness
"""

from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

setup(
    name="deltapid",
    version="1.0.0",
    author="deltapid Contributors",
    description="Delta-form 2-DOF PID with two-tap anti-windup, FP32 hardware model and validation harness",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*"]),
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Intended Audience :: Science/Research",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Scientific/Engineering",
        "Topic :: Software Development :: Libraries :: Python Modules",
    ],
    python_requires=">=3.9",
    install_requires=[
        "numpy>=1.22.0",
        "loguru>=0.6.0",
        "PyYAML>=6.0",
    ],
    extras_require={
        "plotting": ["matplotlib>=3.5.0"],
        "dev": ["pytest>=6.0", "matplotlib>=3.5.0", "black", "isort", "flake8"],
    },
    entry_points={
        "console_scripts": [
            "deltapid=deltapid.cli:run",
        ],
    },
)
