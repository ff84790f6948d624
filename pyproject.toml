[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "starkfield"
version = "0.1.0"
description = "Mersenne-31 extension fields, multilinear extensions, sum-check and GKR lookup arguments"
requires-python = ">=3.10"
dependencies = []
keywords = ["finite-field", "m31", "sumcheck", "gkr", "multilinear", "lookup-argument"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: Science/Research",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: Mathematics",
    "Topic :: Security :: Cryptography",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["starkfield"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
