[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "restlean"
version = "0.1.0"
description = "Building blocks for REST-style web services: a dispatching container, curly-path route matching, filters, CORS, response compression and entity encoding."
requires-python = ">=3.10"
dependencies = []
keywords = ["rest", "http", "routing", "filters", "cors", "gzip", "deflate", "json", "xml"]
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
    "Topic :: Internet :: WWW/HTTP :: HTTP Servers",
    "Topic :: Software Development :: Libraries :: Application Frameworks",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["restlean"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
