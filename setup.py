from setuptools import setup, find_packages

setup(
    name="pidcuts",
    version="0.1",
    packages=find_packages(exclude=["tests", "tests.*"]),
    include_package_data=True,
    python_requires=">=3.10",
    install_requires=[
        "numpy",
        "pandas",
        "pyarrow",
        "hist",
        "tabulate",
        "pyyaml",
        "click",
        "pydantic>=2.0.0",
        "loguru",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points="""
        [console_scripts]
        pidcuts-engine=pidcuts.cli:cli
    """,
)
