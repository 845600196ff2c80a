from setuptools import setup, find_packages

setup(
    name='firecalc',
    version='0.1',
    packages=find_packages(),
    package_data={
        'firecalc': ['data/*.json'],
    },
    install_requires=[
        'numpy',
        'pandas',
        'tqdm',
        'msgpack',
        'pyarrow',
    ],
    extras_require={
        'dev': [
            'pytest>=7.0',
            'pytest-cov>=4.0',
            'ruff>=0.1.0',
        ],
    },
    python_requires='>=3.9',
)
