[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "healthwatch"
version = "0.1.0"
description = "Self-monitoring of distributed nodes: threshold and rate checks, status aggregation and root-cause filtering"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "monitoring",
    "diagnostics",
    "health-check",
    "rate-check",
    "dependency-graph",
    "graphviz",
    "eigenvalues",
]
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
    "Topic :: System :: Monitoring",
    "Topic :: Scientific/Engineering :: Mathematics",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["healthwatch"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
