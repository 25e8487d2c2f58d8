[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "photondb"
version = "3.0.0a0"
description = "ReQL query compiler and executor, RethinkDB wire protocol handling, authentication and plugins"
requires-python = ">=3.10"
dependencies = [
    "bcrypt",
]
keywords = [
    "database",
    "reql",
    "rethinkdb",
    "query",
    "wire-protocol",
    "document-store",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Framework :: AsyncIO",
    "Topic :: Database :: Database Engines/Servers",
]

[project.optional-dependencies]
test = [
    "pytest",
    "pytest-asyncio",
]

[tool.hatch.build.targets.wheel]
packages = ["photondb"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
