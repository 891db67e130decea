[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "opsplugs"
version = "0.1.0"
description = "Small JSON-over-HTTP services for operations: Elasticsearch log search, script runner, public IP lookup and Nacos config browsing"
requires-python = ">=3.10"
keywords = ["elasticsearch", "nacos", "cron", "operations", "http", "logs", "public-ip"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: No Input/Output (Daemon)",
    "Intended Audience :: System Administrators",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: WWW/HTTP :: HTTP Servers",
    "Topic :: System :: Systems Administration",
]
dependencies = [
    "pyyaml>=6.0",
    "requests>=2.28",
]

[project.optional-dependencies]
test = [
    "pytest>=7.0",
    "responses>=0.23",
]

[project.scripts]
opsplugs-es = "opsplugs.es.app:main"
opsplugs-cron = "opsplugs.cron.app:main"
opsplugs-eip = "opsplugs.eip.app:main"
opsplugs-nacos = "opsplugs.nacos.app:main"

[tool.hatch.build.targets.wheel]
packages = ["opsplugs"]

[tool.hatch.build.targets.sdist]
include = ["opsplugs", "tests", "README.md"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
ignore_missing_imports = true
