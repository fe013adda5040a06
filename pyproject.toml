[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "geyser-tools"
version = "0.1.0"
description = "Configuration, deduplication, record keys and metrics helpers for relaying Geyser gRPC updates to Kafka and Pub/Sub"
requires-python = ">=3.11"
dependencies = [
    "pyyaml",
]
keywords = ["geyser", "grpc", "kafka", "pubsub", "prometheus", "deduplication", "metrics"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Distributed Computing",
]

[project.optional-dependencies]
test = [
    "pytest",
    "pytest-asyncio",
]

[tool.hatch.build.targets.wheel]
packages = ["geyser_tools"]

[tool.hatch.build.targets.sdist]
include = [
    "geyser_tools",
    "tests",
]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py311"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.11"
warn_unused_ignores = true
warn_redundant_casts = true
