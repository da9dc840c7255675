from setuptools import find_packages, setup

setup(
    name="gridstate",
    version="0.1.0",
    description="Weight state storage and serialization for models trained through PyGrid",
    license="MIT",
    python_requires=">=3.11",
    package_dir={"": "src"},
    packages=find_packages("src"),
    package_data={"gridstate": ["py.typed", "*.pyi"]},
    install_requires=[
        "numpy >=1.25",
        "torch >=2.4",
        "pydantic >=2.8,<3",
        "pydantic-settings >=2.4",
        "structlog >=23.2",
        "rich >=13.5",
        "click >=8.1",
        "lazy-loader >=0.4",
        "typing-extensions >=4.12",
        "pyyaml >=6",
    ],
    extras_require={
        "test": [
            "pytest >=8.2",
            "hypothesis >=6.16",
        ],
    },
    entry_points={
        "console_scripts": ["gridstate = gridstate.cli:main"],
    },
)
