[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "ksearch"
version = "0.1.0"
description = "File-name indexing, search and monitoring over fixed-record memory-mapped databases"
requires-python = ">=3.10"
dependencies = [
    "watchdog",
]
keywords = ["search", "index", "files", "filesystem", "database", "mmap", "monitor"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: End Users/Desktop",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Desktop Environment :: File Managers",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
ksearch = "ksearch.search:main"
windex = "ksearch.indexer:main"
kmonitor = "ksearch.monitor:main"

[tool.hatch.build.targets.wheel]
packages = ["ksearch"]

[tool.pytest.ini_options]
addopts = "-ra"
