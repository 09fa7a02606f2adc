[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "crumbs"
version = "0.12.2"
description = "Small CRC-checked message framing for I2C controllers and peripherals"
requires-python = ">=3.10"
dependencies = []
keywords = ["i2c", "embedded", "protocol", "crc8", "framing"]
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
    "Topic :: Software Development :: Embedded Systems",
    "Typing :: Typed",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["crumbs"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
