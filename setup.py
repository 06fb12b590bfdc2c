from setuptools import setup, find_packages

setup(
    name="gpdag",
    version="0.1.0",
    description="Subsplit DAG construction and generalized pruning operation scheduling",
    package_dir={"": "gpdag"},
    packages=find_packages("gpdag"),
    install_requires=[
        "numpy>=1.24",
        "scipy>=1.10",
        "networkx>=3.0",
        "treeswift>=1.1",
        "bitarray>=2.6",
    ],
    extras_require={
        "dev": ["pytest>=7.4"],
    },
    entry_points={
        "console_scripts": [
            "gpdag=gpdag.cli:main",
        ],
    },
)
