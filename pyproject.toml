[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "hamax25"
version = "0.1.0"
description = "AX.25 route learning daemon and AX.25-over-IP building blocks"
requires-python = ">=3.10"
dependencies = []
keywords = ["ax25", "ham radio", "amateur radio", "kiss", "axip", "axudp", "routing"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: No Input/Output (Daemon)",
    "Intended Audience :: System Administrators",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Communications :: Ham Radio",
    "Topic :: System :: Networking",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
hamax25-rtd = "hamax25.rtd.daemon:main"

[tool.hatch.build.targets.wheel]
packages = ["hamax25"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
