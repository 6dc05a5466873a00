#!/usr/bin/env python
# -*- coding: utf-8 -*-
from setuptools import find_packages, setup

# There are problems running setup.py on Windows if the encoding is not set
with open('README.md', encoding='utf8') as readme_file:
    readme = readme_file.read()
with open('HISTORY.rst', encoding='utf8') as history_file:
    history = history_file.read()


setup(
    name='analytics-python',
    version='0.1.0',
    description="Buffers track and identify calls and delivers them in batches from a background thread.",
    long_description=readme + '\n\n' + history,
    long_description_content_type="text/markdown",
    packages=find_packages(include=['analytics', 'analytics.*']),
    entry_points={
        'console_scripts': [
            'analytics=analytics.cli:cli'
        ]
    },
    include_package_data=True,
    install_requires=[
        'httpx>=0.23',
        'tenacity>=8.2',
        'certifi',
        'typer>=0.9',
        'rich>=12.0',
        'typing-extensions',
    ],
    extras_require={
        'system-tls': ['truststore'],
        'test': ['pytest'],
    },
    python_requires=">=3.9",
    license="MIT license",
    zip_safe=False,
    keywords='analytics',
    classifiers=[
        'Development Status :: 3 - Alpha',
        'Intended Audience :: Developers',
        'License :: OSI Approved :: MIT License',
        'Natural Language :: English',
        'Programming Language :: Python :: 3',
        'Programming Language :: Python :: 3.9',
        'Programming Language :: Python :: 3.10',
        'Programming Language :: Python :: 3.11',
        'Programming Language :: Python :: 3.12',
    ]
)
