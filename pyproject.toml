[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "vulnreach"
version = "0.1.0"
description = "Reachability analysis of known vulnerabilities through import and call graphs"
requires-python = ">=3.10"
dependencies = []
keywords = ["vulnerability", "osv", "call graph", "reachability", "security", "file url"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: Security",
    "Topic :: Software Development :: Quality Assurance",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["vulnreach"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
