[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "motionlink"
version = "0.1.0"
description = "Accelerated stepper motor control, coordinated multi-axis moves and the iBus RC receiver protocol"
requires-python = ">=3.10"
dependencies = []
keywords = ["stepper", "motor", "acceleration", "ibus", "rc", "telemetry", "embedded", "simulation"]
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
    "Topic :: Software Development :: Embedded Systems",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["motionlink"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
