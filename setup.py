from setuptools import setup, find_packages

setup(
    name='kubicd',
    version='0.1.0',
    packages=find_packages(exclude=['kubicd.tests']),
    include_package_data=True,
    install_requires=[
        'typer[all]',
        'fastapi',
        'uvicorn',
        'pydantic>=2',
        'pydantic-settings>=2',
        'pyyaml',
        'python-dotenv',
    ],
    extras_require={
        'test': [
            'pytest',
            'httpx',
        ],
    },
    entry_points={
        'console_scripts': [
            'kubicd=kubicd.cli:app'
        ]
    },
    description='Join nodes to a kubeadm cluster through salt, with streamed progress',
    classifiers=[
        'Programming Language :: Python :: 3',
        'Operating System :: OS Independent',
    ],
    python_requires='>=3.8',
)
