[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "preflightkit"
version = "0.1.0"
description = "Certification checks, result formatting and policy helpers for container images and operator bundles"
requires-python = ">=3.10"
dependencies = []
keywords = ["containers", "operators", "certification", "junit", "scorecard", "checks"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Quality Assurance",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["preflightkit"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
