from setuptools import setup, find_packages

setup(
    name='nodepoolctl',
    version='0.1.0',
    packages=find_packages(exclude=['nodepoolctl.tests', 'nodepoolctl.tests.*']),
    include_package_data=True,
    install_requires=[
        'typer[all]',
        'fastapi',
        'uvicorn',
        'kubernetes',
        'python-dotenv',
        'pyyaml',
        'pydantic>=2',
        'jsonschema',
    ],
    extras_require={
        'tests': [
            'pytest',
            'httpx',
        ],
    },
    entry_points={
        'console_scripts': [
            'nodepoolctl=nodepoolctl.cli:app'
        ]
    },
    description='CLI and API to create and safely drain Kubernetes node pools',
    classifiers=[
        'Programming Language :: Python :: 3',
        'Operating System :: OS Independent',
    ],
    python_requires='>=3.8',
)
