#!/usr/bin/env python

from setuptools import setup, find_packages

with open('vnacal/__init__.py') as fid:
    for line in fid:
        if line.startswith('__version__'):
            VERSION = line.strip().split()[-1][1:-1]
            break

LONG_DESCRIPTION = """
	vnacal is a vector network analyzer calibration engine: it solves measured calibration standards for error terms and applies them to raw measurements.
"""
setup(name='vnacal',
	version=VERSION,
	license='new BSD',
	description='Vector Network Analyzer Calibration',
	long_description=LONG_DESCRIPTION,
	packages=find_packages(include=['vnacal', 'vnacal.*']),
	python_requires='>=3.7',
	install_requires = [
		'numpy',
		'scipy',
		'pandas',
		],
	extras_require = {
		'test': [
			'pytest',
			],
		},
	package_dir={'vnacal':'vnacal'},
	include_package_data = True,
	)
