#!/usr/bin/env python3
"""
Setup script for switchback
"""

from setuptools import setup, find_packages
import os
import sys

# Version lives in the package; read it without importing dependencies
sys.path.insert(0, os.path.join(os.path.dirname(os.path.abspath(__file__)), 'switchback'))
from __version__ import __version__

# README for long_description
def read_file(filename):
    with open(os.path.join(os.path.dirname(__file__), filename), encoding='utf-8') as f:
        return f.read()

setup(
    name='switchback',
    version=__version__,
    description='Fixes words typed in the wrong keyboard layout (English / Ukrainian) on Linux',
    long_description=read_file('README.md'),
    long_description_content_type='text/markdown',
    packages=find_packages(exclude=['tests', 'tests.*', 'docs']),
    python_requires='>=3.9',
    install_requires=[
        'evdev',         # Reading keyboards from /dev/input, UInput output
        'python-xlib',   # Decoding keys through the X keyboard mapping
        'pyenchant',     # System spellchecker (hunspell dictionaries with affixes)
    ],
    extras_require={
        'dev': [
            'pytest>=7.0',
            'pytest-cov',
            'pytest-timeout',
        ],
    },
    entry_points={
        'console_scripts': [
            'switchback=switchback.cli:main',
        ],
    },
    classifiers=[
        'Development Status :: 4 - Beta',
        'Intended Audience :: End Users/Desktop',
        'Topic :: Utilities',
        'License :: OSI Approved :: MIT License',
        'Programming Language :: Python :: 3',
        'Programming Language :: Python :: 3.9',
        'Programming Language :: Python :: 3.10',
        'Programming Language :: Python :: 3.11',
        'Programming Language :: Python :: 3.12',
        'Programming Language :: Python :: 3.13',
        'Operating System :: POSIX :: Linux',
        'Environment :: X11 Applications',
        'Topic :: Desktop Environment',
    ],
)
