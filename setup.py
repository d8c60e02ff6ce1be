#!/usr/bin/env python

"""
Ref: https://github.com/argoai/argoverse-api/blob/master/setup.py
A setuptools based setup module.
See:
https://packaging.python.org/en/latest/distributing.html
https://github.com/pypa/sampleproject
"""

from pathlib import Path

# Always prefer setuptools over distutils
from setuptools import find_packages, setup

# Get the long description from the README file
long_description = (Path(__file__).parent / "README.md").read_text()

setup(
    name="gtmviz",
    version="0.1.0",
    description="Viewer and geometric sanity check for ground truth feature matches (GTM) of image pairs",
    long_description=long_description,
    long_description_content_type="text/markdown",
    url="",
    author="",
    author_email="",
    license="BSD-3-Clause",
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Science/Research",
        "Operating System :: POSIX",
        "Operating System :: MacOS",
        "Programming Language :: Python :: 3",
        "Topic :: Scientific/Engineering :: Image Recognition",
    ],
    keywords="computer-vision",
    packages=find_packages(exclude=["tests", "tests.*"]),
    include_package_data=True,
    package_data={"gtmviz": ["configs/*.yaml", "configs/*/*.yaml"]},
    python_requires=">= 3.8",
    install_requires=[
        "hydra-core>=1.2",
        "numpy",
        "omegaconf",
        "opencv-python>=4.5",
        "Pillow",
        "simplejson",
    ],
    extras_require={"test": ["pytest"]},
    entry_points={"console_scripts": ["gtm-viewer=gtmviz.runner.run_gtm_viewer:main"]},
)
