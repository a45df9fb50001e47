[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "cosmosoperator"
version = "0.1.0"
description = "Resource models, CometBFT status polling and status caching for running Cosmos full nodes on Kubernetes"
requires-python = ">=3.10"
dependencies = []
keywords = ["cosmos", "cometbft", "kubernetes", "operator", "blockchain", "fullnode"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: System Administrators",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Clustering",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["cosmosoperator"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
