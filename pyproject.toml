[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "watchmarket"
version = "0.1.0"
description = "Market data core: tickers, rates, charts and coin info with Redis, in-memory and PostgreSQL storage."
requires-python = ">=3.10"
keywords = ["market", "tickers", "rates", "charts", "cache", "redis", "postgres"]
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
    "Topic :: Office/Business :: Financial :: Investment",
]
dependencies = [
    "pyyaml>=6.0",
    "redis>=4.5",
    "requests>=2.28",
    "flask>=2.2",
]

[project.optional-dependencies]
test = [
    "pytest>=7.0",
    "responses>=0.23",
]

[tool.hatch.build.targets.wheel]
packages = ["watchmarket"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
ignore_missing_imports = true
