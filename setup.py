"""
Setup script for stake_snapshot.
"""
import pathlib

from setuptools import find_packages, setup


def read_requirements(name: str) -> list:
    with pathlib.Path(__file__).with_name(name).open() as f:
        return [
            line.split("#", 1)[0].strip()
            for line in f
            if line.split("#", 1)[0].strip()
        ]


setup(
    name="stake_snapshot",
    version="0.1.0",
    description="Point-in-time staking pool snapshots read from archive-node storage",
    packages=find_packages(where="src"),
    package_dir={
        "": "src",
    },
    include_package_data=True,
    zip_safe=False,
    install_requires=read_requirements("requirements.txt"),
    extras_require={
        "test": read_requirements("dev-requirements.txt"),
    },
    entry_points={
        "console_scripts": [
            "stake-snapshot=stake_snapshot.cli:main",
        ],
    },
    python_requires=">=3.10",
    classifiers=[
        "Programming Language :: Python :: 3",
        "Operating System :: OS Independent",
    ],
)
