from setuptools import setup, find_packages

setup(
    name='stationlink',
    version='1.0.0',
    packages=find_packages(where='src'),
    package_dir={'': 'src'},
    description='stationlink: Python client for remote controlling a robot simulation station over TCP',
    install_requires=[
        'numpy',
        'PyYAML',
        'draccus',
    ],
    extras_require={
        'test': [
            'pytest',
            'scipy',
        ],
    },
    entry_points={
        'console_scripts': [
            'stationlink=stationlink.main:main',
        ],
    },
    python_requires='>=3.8',
)
