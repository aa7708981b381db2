from os import path
from setuptools import setup, find_packages
from speck.version import __version__

# Get the long description from the README file
here = path.abspath( path.dirname( __file__ ) )
with open( path.join( here, 'DESCRIPTION.rst' ), encoding='utf-8' ) as f:
    long_description = f.read()

setup(
    name='speck',
    version=__version__,
    description=('A declarative interpreter for binary structures, '
                'driven by JSON structure definitions'),
    long_description=long_description,
    license='BSD',
    classifiers=[
        'Development Status :: 4 - Beta',
        'Environment :: Console',
        'Intended Audience :: Developers',
        'License :: OSI Approved :: BSD License',
        'Programming Language :: Python :: 3 :: Only',
        'Programming Language :: Python :: 3',
        'Programming Language :: Python :: 3.8',
        'Programming Language :: Python :: 3.9',
        'Programming Language :: Python :: 3.10',
        'Programming Language :: Python :: 3.11',
        'Programming Language :: Python :: 3.12',
    ],
    python_requires='>=3.8',
    install_requires=['typing_extensions >= 3.7.4'],
    extras_require={
        'test': ['pytest'],
    },
    packages=find_packages( exclude=['doc'] ),
    entry_points={
        'console_scripts': [
            'speckread = speck.cli:speckread',
            'speckgen = speck.cli:speckgen',
            'speckdoc = speck.cli:speckdoc',
        ],
    },
)
