from setuptools import find_packages, setup

with open("README.md", "r") as fh:
    long_description = fh.read()

setup(
    name="argbind",
    version="0.1.0",
    description="Bind command-line arguments to function arguments, driven by metadata",
    long_description=long_description,
    long_description_content_type="text/markdown",
    license="MIT",
    packages=find_packages(include=["argbind", "argbind.*"]),
    package_data={"argbind": ["py.typed"]},
    python_requires=">=3.8",
    install_requires=[
        "docstring_parser",
        "typing_extensions>=4.0.0",
        "pyyaml",
    ],
    extras_require={
        "testing": [
            "pytest",
            "pytest-cov",
        ],
        "type-checking": [
            "mypy",
            "types-PyYAML",
        ],
    },
    classifiers=[
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
    ],
)
