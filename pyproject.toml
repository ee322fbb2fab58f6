[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "terrarium"
version = "0.1.0"
description = "Temperature and humidity control for reptile enclosures: PID control, relay switching, DHT22 decoding, SSD1306 framebuffer, a block allocator and a simulated run loop"
requires-python = ">=3.10"
dependencies = []
keywords = ["terrarium", "reptile", "pid", "dht22", "ssd1306", "relay", "thermostat", "humidity"]
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
    "Topic :: Home Automation",
    "Topic :: Scientific/Engineering :: Human Machine Interfaces",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
terrarium = "terrarium.app:main"

[tool.hatch.build.targets.wheel]
packages = ["terrarium"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
