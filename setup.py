"""
Setup script for poisson-gmc package
"""

from setuptools import setup, find_packages
import os

# Read README for long description
def read_file(filename):
    filepath = os.path.join(os.path.dirname(__file__), filename)
    # Try encodings in order: utf-8-sig (UTF-8 BOM), utf-8, latin-1
    for enc in ('utf-8-sig', 'utf-8', 'latin-1'):
        try:
            with open(filepath, encoding=enc) as f:
                return f.read()
        except (UnicodeDecodeError, LookupError, FileNotFoundError):
            continue
    return ''

setup(
    name='poisson-gmc',
    version='0.1.0',
    author='Mahdad',
    author_email='your.email@example.com',
    description='Non-parametric Bayesian intensity estimation for Poisson processes '
                'with a Gamma Markov Chain prior',
    long_description=read_file('README.md'),
    long_description_content_type='text/markdown',
    url='https://github.com/yourusername/poisson-gmc',
    license='MIT',

    # Package discovery from src/
    packages=find_packages(where="src"),
    package_dir={"": "src"},

    python_requires='>=3.8',

    install_requires=[
        'numpy>=1.21.0',
        'scipy>=1.7.0',
        'pandas>=1.3.0',
        'tqdm>=4.62.0',
    ],

    extras_require={
        'diagnostics': [
            'arviz>=0.12.0,<1.0',
        ],
        'test': [
            'pytest>=7.0.0',
            'pytest-cov>=3.0.0',
        ],
        'dev': [
            'pytest>=7.0.0',
            'pytest-cov>=3.0.0',
            'black>=22.0.0',
            'flake8>=4.0.0',
        ],
        'all': [
            'arviz>=0.12.0,<1.0',
            'pytest>=7.0.0',
            'pytest-cov>=3.0.0',
            'black>=22.0.0',
            'flake8>=4.0.0',
        ],
    },

    classifiers=[
        'Development Status :: 3 - Alpha',
        'Intended Audience :: Science/Research',
        'License :: OSI Approved :: MIT License',
        'Programming Language :: Python :: 3',
        'Programming Language :: Python :: 3.8',
        'Programming Language :: Python :: 3.9',
        'Programming Language :: Python :: 3.10',
        'Programming Language :: Python :: 3.11',
        'Topic :: Scientific/Engineering :: Mathematics',
    ],

    keywords='poisson-process intensity bayesian-inference mcmc gibbs-sampler gamma-markov-chain',

    project_urls={
        'Source': 'https://github.com/yourusername/poisson-gmc',
        'Tracker': 'https://github.com/yourusername/poisson-gmc/issues',
    },
)
