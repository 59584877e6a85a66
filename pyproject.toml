[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "locsvc"
version = "0.1.0"
description = "Location service engine pieces: NMEA sentence generation, daemon control-message pipes, network-initiated request handling and XTRA data injection."
requires-python = ">=3.10"
dependencies = []
keywords = [
    "gps",
    "gnss",
    "nmea",
    "location",
    "agps",
    "xtra",
    "named-pipe",
]
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
    "Topic :: Scientific/Engineering :: GIS",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["locsvc"]

[tool.hatch.build.targets.sdist]
include = ["locsvc", "tests", "pyproject.toml", "README.md"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
