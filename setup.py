from setuptools import setup, find_packages

setup(
    name="relayrun",
    version="0.1.0",
    description="Run locally built test binaries on a remote host over SSH",
    author="",
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    python_requires=">=3.8",
    install_requires=[
        "paramiko>=3.4.0",
        "pyyaml>=6.0.1",
        "click>=8.1.7",
    ],
    extras_require={
        "test": [
            "pytest>=7.4",
        ],
    },
    entry_points={
        "console_scripts": [
            "relayrun=relayrun.cli:main",
        ],
    },
    include_package_data=True,
)
