[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "cadsim"
version = "0.1.0"
description = "Components of a cycle-driven multiprocessor architecture simulator: trace readers, task graphs, a simple cache and a snooping bus interconnect"
requires-python = ">=3.10"
dependencies = []
keywords = ["simulator", "architecture", "cache", "coherence", "interconnect", "trace", "task graph"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Education",
    "Intended Audience :: Science/Research",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Emulators",
    "Topic :: Education",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["cadsim"]

[tool.pytest.ini_options]
addopts = "-ra"
