[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "permitdb"
version = "0.1.0"
description = "HTTP service for storing permit records, processing states and payments in LMDB"
requires-python = ">=3.10"
keywords = ["permits", "lmdb", "crud", "http", "flask"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Framework :: Flask",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: WWW/HTTP :: HTTP Servers",
    "Topic :: Database",
]
dependencies = [
    "lmdb",
    "flask",
    "requests",
    "python-dotenv",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
permitdb = "permitdb.app:main"

[tool.hatch.build.targets.wheel]
packages = ["permitdb"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
