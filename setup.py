from setuptools import setup, find_packages

# to setup utils run the following
# pip install -e .

setup(
    name="spectro_sum",
    version="0.0.1",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "numpy",
        "pymatgen",
    ],
    extras_require={
        "test": ["pytest"],
    },
)
