from setuptools import setup, find_packages

try:
    with open('README.md') as file:
        long_desc = file.read()
except IOError:
    long_desc = ''


setup(
    name='python-batchiter',
    version='0.1.0',
    description=('Item by item iteration over batched and paginated data sources.'),
    author='Lincolwn Martins',
    keywords='iterator pagination batch rate limit',
    packages=find_packages(exclude=['tests', 'tests.*']),
    license='MIT License',
    long_description=long_desc,
    python_requires='>=3.7',
    install_requires=['requests'],
    extras_require={
        'test': ['pytest'],
    },
)
