[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "skipcoll"
version = "0.1.0"
description = "Thread-safe ordered skip-list set and map, and bounded and unbounded FIFO ring queues"
requires-python = ">=3.10"
dependencies = []
keywords = ["skiplist", "skip-list", "concurrent", "thread-safe", "queue", "ordered-map", "ordered-set"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["skipcoll"]

[tool.pytest.ini_options]
addopts = "-ra"
