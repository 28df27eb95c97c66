#!/usr/bin/env python
# -*- coding: utf-8 -*-

import io
import os
from setuptools import setup, find_packages

# Package meta-data
NAME = 'termgraph'
DESCRIPTION = 'Directed graph engine and ontology layer for biomedical term enrichment analysis'
URL = 'https://github.com/wlchin/termgraph'
EMAIL = 'wee.chin@health.wa.gov.au'
AUTHOR = 'WL Chin'
REQUIRES_PYTHON = '>=3.9'
VERSION = '0.1.0'

# Core required packages
REQUIRED = [
    'pandas>=2.0.0',
    'numpy>=1.24.0',
    'tqdm>=4.66.0',
    'joblib>=1.3.0',
    'pydantic>=2.4.0',
    'pyyaml>=6.0',
]

# Additional packages
EXTRAS = {
    'dev': [
        'pytest>=7.3.1',
        'black>=23.3.0',
        'isort>=5.12.0',
        'flake8>=6.0.0',
    ],
}

# The rest of the setup code
here = os.path.abspath(os.path.dirname(__file__))

# Import the README and use it as the long-description
try:
    with io.open(os.path.join(here, 'README.md'), encoding='utf-8') as f:
        long_description = '\n' + f.read()
except FileNotFoundError:
    long_description = DESCRIPTION

setup(
    name=NAME,
    version=VERSION,
    description=DESCRIPTION,
    long_description=long_description,
    long_description_content_type='text/markdown',
    author=AUTHOR,
    author_email=EMAIL,
    python_requires=REQUIRES_PYTHON,
    url=URL,
    packages=find_packages(exclude=('tests',)),
    install_requires=REQUIRED,
    extras_require=EXTRAS,
    include_package_data=True,
    license='MIT',
    classifiers=[
        'License :: OSI Approved :: MIT License',
        'Programming Language :: Python',
        'Programming Language :: Python :: 3',
        'Programming Language :: Python :: 3.9',
        'Programming Language :: Python :: 3.10',
        'Programming Language :: Python :: 3.11',
        'Topic :: Scientific/Engineering :: Bioinformatics',
    ],
)
