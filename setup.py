import os
import re
from setuptools import setup, find_packages


def parse_requirements(filename):
    """Load requirements from a file."""
    with open(filename, "r", encoding="utf-8") as f:
        return [line.strip() for line in f if line.strip() and not line.startswith("#")]


def get_version():
    """Extracts the package version from __init__.py."""
    with open(os.path.join("sgd_ols", "__init__.py"), "r", encoding="utf-8") as f:
        match = re.search(r'__version__ = "(.*?)"', f.read())
        return match.group(1) if match else "0.0.0"


setup(
    name="sgd_ols",
    version=get_version(),  # Dynamically fetch from __init__.py
    description=(
        "Stochastic gradient descent preconditioned by an online least squares "
        "estimate of the inverse Hessian"
    ),
    long_description=open("README.md", encoding="utf-8").read(),
    long_description_content_type="text/markdown",
    license="MIT",
    keywords=(
        "stochastic optimization, quasi-Newton, recursive least squares, "
        "Polyak averaging"
    ),
    packages=find_packages(include=["sgd_ols", "sgd_ols.*"]),
    package_dir={"sgd_ols": "sgd_ols"},
    install_requires=parse_requirements("requirements.txt"),
    extras_require={"test": ["pytest"]},
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
    ],
    python_requires=">=3.10",
)
