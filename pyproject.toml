[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "lazytask"
version = "0.1.0"
description = "A keyboard-driven terminal task manager backed by an append-only JSON Lines event log"
requires-python = ">=3.11"
keywords = ["todo", "tasks", "terminal", "tui", "event-sourcing", "jsonl", "gtd"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: End Users/Desktop",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Office/Business :: Scheduling",
]
dependencies = [
    "blessed",
    "wcwidth",
    "platformdirs",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
lazytask = "lazytask.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["lazytask"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py311"

[tool.mypy]
python_version = "3.11"
warn_unused_ignores = true
