"""Setup script for qsodb."""

from setuptools import find_packages, setup

setup(
    name="qsodb",
    version="0.1.0",
    description="Ham radio QSO and callsign database with QRZ.com lookups",
    packages=find_packages(include=["qsodb", "qsodb.*"]),
    python_requires=">=3.11",
    install_requires=[
        "sqlmodel>=0.0.16",
        "SQLAlchemy>=2.0",
        "platformdirs>=3.0",
        "typer>=0.9",
        "rich>=13.0",
        "requests>=2.31",
        "xmltodict>=0.13",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    entry_points={
        "console_scripts": [
            "qsodb=qsodb.cli:main",
        ],
    },
    zip_safe=False,
)
