[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "replisnap"
version = "0.2.6"
description = "Snapshot interpolation and client-side prediction for replicated game entities"
requires-python = ">=3.10"
dependencies = []
keywords = ["networking", "snapshot", "interpolation", "prediction", "replication", "games"]
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
    "Topic :: Games/Entertainment",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
replisnap-plain = "replisnap.demos.common:main"
replisnap-interpolated = "replisnap.demos.interpolated:main"
replisnap-predicted = "replisnap.demos.owner_predicted:main"

[tool.hatch.build.targets.wheel]
packages = ["replisnap"]

[tool.hatch.build.targets.sdist]
include = ["replisnap", "tests", "README.md"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
