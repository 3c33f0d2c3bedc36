from setuptools import find_packages, setup

setup(
    name="gemmcheck",
    version="0.1.0",
    description="gemmcheck - Differential validation for low-precision matrix multiplication",
    packages=find_packages(include=["gemmcheck", "gemmcheck.*"]),
    python_requires=">=3.10",
    install_requires=["numpy", "matplotlib", "tabulate", "tqdm"],
    extras_require={"test": ["pytest"]},
)
