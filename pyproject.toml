[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "cablerelay"
version = "1.3.0"
description = "Building blocks for a real-time relay speaking the Action Cable protocol: subscriptions, routing, broadcast intake over HTTP and Redis, and supporting utilities."
requires-python = ">=3.10"
keywords = ["websocket", "action-cable", "pubsub", "realtime", "redis", "broadcast"]
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
    "Topic :: Internet :: WWW/HTTP",
]
dependencies = [
    "redis",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["cablerelay"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
