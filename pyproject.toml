[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "webylib"
version = "0.3.19"
description = "Webcash HD wallet library: legacy 4-chain key derivation, pluggable wallet storage, server client and seed recovery"
requires-python = ">=3.10"
dependencies = []
keywords = ["webcash", "wallet", "payments", "bearer-cash", "hd-wallet"]
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
    "Topic :: Office/Business :: Financial",
    "Topic :: Security :: Cryptography",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["webylib"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
