[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "lagwatch_http"
version = "0.1.0"
description = "HTTP API and Prometheus-format metrics endpoint for monitoring consumer group lag"
requires-python = ">=3.11"
dependencies = []
keywords = ["kafka", "consumer-lag", "monitoring", "http-api", "prometheus", "wsgi"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: System Administrators",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: WWW/HTTP :: HTTP Servers",
    "Topic :: Internet :: WWW/HTTP :: WSGI :: Application",
    "Topic :: System :: Monitoring",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
lagwatch-http = "lagwatch_http.coordinator:main"

[tool.hatch.build.targets.wheel]
packages = ["lagwatch_http"]

[tool.hatch.build.targets.sdist]
include = ["lagwatch_http", "tests", "pyproject.toml"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py311"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.11"
warn_unused_ignores = true
