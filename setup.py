from setuptools import setup, find_packages


setup(
    name='warptools',
    version='0.1a',
    packages=find_packages(exclude=['tests', 'tests.*']),
    license='MIT',
    description='Apply stacks of spatial transforms to scalar, vector and '
                'tensor volumes',
    python_requires='>=3.8',
    install_requires=['nibabel', 'numpy', 'scipy'],
    extras_require={'test': ['pytest']},
)
