[build-system]
requires = ["setuptools>=64"]
build-backend = "setuptools.build_meta"

[project]
name = "specdb"
version = "0.1.0"
description = "Build and query a SQLite database of C function specifications extracted from manual pages"
requires-python = ">=3.10"
dependencies = []
keywords = ["manpages", "sqlite", "static-analysis", "posix", "libc"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Database",
    "Topic :: Software Development :: Quality Assurance",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
specdb-build = "specdb.indexer:main"

[tool.setuptools.packages.find]
include = ["specdb*"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
