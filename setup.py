"""
Setup script for patrec package.
"""

from setuptools import setup, find_packages

setup(
    name="patrec",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        # Core numerical dependencies
        "numpy>=1.20.0",
        "pandas>=1.3.0",
        "scipy>=1.7.0",

        # Utilities
        "pyyaml>=6.0.0",
    ],
    extras_require={
        'test': [
            "pytest>=6.0.0",
            "scikit-learn>=1.0.0",
        ],
    },
    author="Jachin Fang",
    description="Pattern recognition primitives: kNN classification, PCA and LDA reduction",
    keywords="knn, pca, lda, pattern recognition, dimensionality reduction",
    python_requires=">=3.8",
)
