[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "kotgrad"
version = "1.0.0"
description = "A small tensor library with reverse-mode automatic differentiation and simple feed-forward neural networks."
requires-python = ">=3.10"
dependencies = []
keywords = [
    "tensor",
    "autograd",
    "automatic differentiation",
    "neural network",
    "machine learning",
    "feed-forward",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: Education",
    "Intended Audience :: Science/Research",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: Artificial Intelligence",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["kotgrad"]

[tool.hatch.build.targets.sdist]
include = ["kotgrad", "tests", "pyproject.toml", "README.md"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
