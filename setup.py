from setuptools import find_packages, setup

setup(
    name="grove",
    version="0.1.0",
    packages=find_packages(include=["grove", "grove.*"]),
    entry_points={
        "console_scripts": [
            "grove=grove.cli:main",
        ],
    },
    python_requires=">=3.10",
    extras_require={
        "test": ["pytest"],
    },
    description="Grove — branching version control for an in-memory file tree",
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Topic :: Software Development :: Version Control",
        "Programming Language :: Python :: 3.12",
    ],
)
