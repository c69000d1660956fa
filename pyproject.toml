[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "goldk"
version = "0.1.0"
description = "Gate.io futures API client, DingTalk alerts and a SQLite-backed JSON API for keys, monitor settings, signals and orders"
requires-python = ">=3.11"
keywords = ["gate.io", "futures", "candlestick", "kline", "trading", "dingtalk", "flask"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Web Environment",
    "Framework :: Flask",
    "Intended Audience :: Financial and Insurance Industry",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Office/Business :: Financial :: Investment",
]
dependencies = [
    "requests>=2.28",
    "flask>=2.3",
]

[project.optional-dependencies]
test = [
    "pytest>=7.4",
    "responses>=0.23",
]

[project.scripts]
goldk = "goldk.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["goldk"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py311"

[tool.mypy]
python_version = "3.11"
warn_unused_ignores = true
