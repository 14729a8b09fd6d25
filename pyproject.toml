[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "hubstatus"
version = "0.1.0"
description = "Health collection for a small home IoT hub: system metrics, HAProxy backends, Docker containers, host reachability, stored history and dashboard HTML fragments."
requires-python = ">=3.10"
keywords = ["status page", "monitoring", "haproxy", "docker", "iot", "metrics"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: System Administrators",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Monitoring",
]
dependencies = [
    "psutil",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["hubstatus"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
