[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "posagent"
version = "0.1.0"
description = "Point-of-sale agent core: cloud pairing and heartbeats, ESC/POS receipts, TSPL label validation and file print transport"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "point-of-sale",
    "pos",
    "escpos",
    "cp858",
    "thermal-printer",
    "receipt",
    "label",
    "tspl",
    "hs256",
    "pairing",
    "heartbeat",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Office/Business :: Financial :: Point-Of-Sale",
    "Topic :: Printing",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["posagent"]

[tool.hatch.build.targets.sdist]
include = ["posagent", "tests", "pyproject.toml"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
