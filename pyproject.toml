[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "ec2debug"
version = "0.1.0"
description = "Debugger building blocks for 8051 targets (symbol tables, type tree, s51 simulator target, EC2/EC3 bootloader) with serial playback and sniffing tools"
requires-python = ">=3.10"
keywords = ["8051", "debugger", "ec2", "ec3", "s51", "simulator", "serial", "bootloader"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Debuggers",
    "Topic :: Software Development :: Embedded Systems",
]
dependencies = [
    "pyserial",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
ec2-playback = "ec2debug.playback:main"
ec2-sniffer = "ec2debug.sniffer:main"

[tool.hatch.build.targets.wheel]
packages = ["ec2debug"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
