from setuptools import setup, find_packages

setup(
    name='pyago',
    version='0.1.0',
    author='MG',
    python_requires='>=3.9',
    packages=find_packages(exclude=['tests', 'tests.*']),
    include_package_data=True,
    install_requires=[
        'Click',
    ],
    extras_require={
        'test': ['pytest'],
    },
    entry_points={
        'console_scripts': [
            'pyjdate = pyago.pyjdate:jdate_cli',
            'pyago = pyago.pyelapsed:ago_cli',
        ],
    },
)
