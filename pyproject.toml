[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "tsj"
version = "0.1.0"
description = "Service toolkit for Flask: hook-driven runner, REST handler wrappers, middleware, structured logging, environment configuration and Redis stream messaging."
requires-python = ">=3.10"
keywords = [
    "framework",
    "microservice",
    "flask",
    "redis-streams",
    "middleware",
    "logging",
    "configuration",
]
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
    "Framework :: Flask",
    "Topic :: Internet :: WWW/HTTP :: WSGI :: Application",
    "Topic :: Software Development :: Libraries :: Application Frameworks",
]
dependencies = [
    "flask",
    "werkzeug",
    "requests",
    "redis",
    "pymongo",
    "pydantic",
]

[project.optional-dependencies]
test = [
    "pytest",
    "responses",
]

[tool.hatch.build.targets.wheel]
packages = ["tsj"]

[tool.hatch.build.targets.sdist]
include = ["tsj", "tests", "README.md"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
ignore_missing_imports = true
