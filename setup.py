import os
from setuptools import setup, find_packages

SETUP_DIR = os.path.dirname(os.path.realpath(__file__))
README_PATH = os.path.join(SETUP_DIR, "README.md")

with open(README_PATH, "r") as readme:
    README = readme.read()

setup(
    name="artifact-resolver",
    description="Resolve versions, artifacts and transitive dependency graphs from Maven-layout repositories",
    long_description=README,
    long_description_content_type="text/markdown",
    license="LGPL-3.0-or-later",
    version="0.1.0",
    package_dir={"": "src"},
    packages=find_packages("src"),
    python_requires=">=3.11",
    install_requires=[
        "graphviz>=0.14.1",
        "networkx>=2.4",
        "platformdirs>=3.0",
        "pydantic>=2.0",
        "pydantic-settings>=2.0",
        "sqlalchemy>=2.0",
        "tqdm>=4.48.0",
        # Indirect dependencies for which we pin a minimum version to mitigate vulnerabilities:
        "requests>=2.20.0",  # CVE-2018-18074
        "urllib3>=1.26.5",  # CVE-2021-33503
    ],
    extras_require={
        "dev": ["flake8", "pytest", "hypothesis", "mypy>=0.812", "types-setuptools", "types-requests"],
        "test": ["pytest", "hypothesis"],
    },
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: GNU Lesser General Public License v3 or later (LGPLv3+)",
        "Programming Language :: Python :: 3 :: Only",
        "Topic :: Software Development :: Build Tools",
    ],
)
