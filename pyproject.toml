[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "rvemu32"
version = "1.1.0"
description = "A small RV32IMC instruction-set emulator with PLIC and CLINT peripherals"
requires-python = ">=3.10"
dependencies = []
keywords = ["risc-v", "rv32", "rv32imc", "emulator", "cpu", "plic", "clint"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: Education",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Emulators",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["rvemu32"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
