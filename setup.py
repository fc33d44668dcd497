from setuptools import find_packages, setup


setup(
    name='heat-geodesics',
    version='0.1.0',
    packages=find_packages(exclude=['tests']),
    python_requires='>=3.8',
    install_requires=[
        'cholespy',
        'torch',
        'tqdm',
        'trimesh'
    ],
    extras_require={
        'test': [
            'potpourri3d',
            'pytest'
        ]
    }
)
