from pathlib import Path

from setuptools import find_packages, setup

this_directory = Path(__file__).parent
long_description = (this_directory / "README.md").read_text(encoding="utf-8")

setup(
    name="recipeflow",
    version="0.1.0",
    description="Declarative preprocessing recipes, model workflows and tuning for pandas and scikit-learn.",
    long_description=long_description,
    long_description_content_type="text/markdown",
    include_package_data=True,
    packages=find_packages(include=["recipeflow", "recipeflow.*"]),
    install_requires=[
        "pandas>=2.0.0",
        "numpy>=1.24.0",
        "scikit-learn>=1.4.0,<2.0.0",
        "scipy>=1.10.0",
        "pydantic>=2.0.0",
        "pydantic-settings>=2.0.0",
        "joblib>=1.3.0",
    ],
    extras_require={
        "dev": ["pytest"],
        "tuning": ["optuna>=3.0.0"],
    },
    python_requires=">=3.9",
    classifiers=[
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Operating System :: OS Independent",
    ],
)
