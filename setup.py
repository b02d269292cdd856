from pathlib import Path

from setuptools import setup

THIS_DIR = Path(__file__).parent.resolve()

# single source of truth for the version
version_ns = dict()
exec(THIS_DIR.joinpath("src", "dylibvendor", "__version__.py").read_text(), version_ns)

# open README.md for PyPI
with open(THIS_DIR.joinpath("README.md"), encoding="utf-8") as f:
    long_description = "\n" + f.read()

setup(
    name="dylibvendor",
    version=version_ns["__version__"],
    python_requires=">=3.9.0",
    description="Vendors third-party dylibs into a macOS sysroot and rewrites their load paths",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=["dylibvendor"],
    package_dir={
        "": "src",
    },
    install_requires=["macholib"],
    extras_require={"test": ["pytest"]},
    entry_points={
        "console_scripts": ["dylibvendor = dylibvendor.__main__:main"],
    },
    classifiers=[
        "License :: OSI Approved :: MIT License",
        "Operating System :: MacOS",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: Implementation :: CPython",
    ],
)
