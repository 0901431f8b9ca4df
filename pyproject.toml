[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "kvwire"
version = "0.1.0"
description = "A small in-memory key-value server and client speaking a length-prefixed binary protocol"
requires-python = ">=3.10"
dependencies = []
keywords = ["key-value", "server", "client", "protocol", "socket"]
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
    "Topic :: Database :: Database Engines/Servers",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
kvwire-server = "kvwire.server:main"
kvwire-client = "kvwire.client:main"

[tool.hatch.build.targets.wheel]
packages = ["kvwire"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
