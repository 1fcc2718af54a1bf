[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "srnetsim"
version = "0.1.0"
description = "Discrete-event network emulator with a Selective Repeat reliable transport protocol"
requires-python = ">=3.10"
dependencies = []
keywords = ["network", "simulation", "selective-repeat", "transport", "discrete-event"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Education",
    "Intended Audience :: Science/Research",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: System :: Networking",
    "Topic :: Education",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
srnetsim = "srnetsim.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["srnetsim"]

[tool.pytest.ini_options]
addopts = "-ra"
