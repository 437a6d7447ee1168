[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "logscope"
version = "0.11.1"
description = "Watch and analyse Nginx access logs in real time from the terminal."
requires-python = ">=3.10"
dependencies = []
keywords = ["log", "analyzer", "nginx", "access-log", "tui", "curses", "monitoring"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Environment :: Console :: Curses",
    "Intended Audience :: System Administrators",
    "Intended Audience :: Developers",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: Log Analysis",
    "Topic :: System :: Monitoring",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
logscope = "logscope.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["logscope"]

[tool.hatch.build.targets.sdist]
include = ["logscope", "tests"]

[tool.pytest.ini_options]
addopts = "-ra"
