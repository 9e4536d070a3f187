#!/usr/bin/env python
from setuptools import setup, find_packages

setup(
    name="conjpipe",
    version="0.1.0",
    description="Conjugate Bayesian models: closed-form updates checked against MCMC",
    long_description=open("README.md", encoding="utf-8").read(),
    long_description_content_type="text/markdown",

    # the conjpipe/ package and its subpackages, without tests or example scripts
    packages=find_packages(exclude=["tests*", "docs*", "examples*"]),

    python_requires=">=3.10",
    install_requires=[
        "numpy>=1.20",
        "scipy>=1.7",
        "prefect>=3.0",
        "matplotlib>=3.5",
        "arviz>=0.15,<1.0",
    ],
    extras_require={
        "ppl": [
            "pymc>=5.0",
        ],
        "dev": [
            "pytest",
            "black",
            "flake8",
        ],
    },

    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
    ],

    include_package_data=False,
)
