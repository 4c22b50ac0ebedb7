[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "patientbeacon"
version = "0.1.0"
description = "Central node for a BLE patient beacon network: patient lookup, UDP peer tracking and a GATT toolkit"
requires-python = ">=3.10"
dependencies = []
keywords = ["bluetooth", "ble", "gatt", "att", "beacon", "udp", "broadcast", "peers"]
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
    "Topic :: Communications",
    "Topic :: System :: Networking",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
patientbeacon = "patientbeacon.app:main"

[tool.hatch.build.targets.wheel]
packages = ["patientbeacon"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]
