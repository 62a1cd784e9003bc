[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "mediahub"
version = "0.1.0"
description = "Core services for a media hub: settings, skins, JSON-RPC over TCP, service discovery and process metrics"
requires-python = ">=3.10"
dependencies = []
keywords = ["media", "skins", "json-rpc", "settings", "service discovery"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Multimedia",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["mediahub"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
