[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "vassalo"
version = "0.1.0"
description = "DAG event primitives, validator weights, event ordering and gossip leecher helpers for event-based consensus"
requires-python = ">=3.10"
dependencies = []
keywords = ["dag", "consensus", "gossip", "validators", "events", "lamport"]
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
    "Topic :: System :: Distributed Computing",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["vassalo"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
