[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "folio-backend"
version = "0.1.0"
description = "Backend building blocks for a portfolio manager: request and response models, persistence, identity-provider client, audit logging, metrics and WSGI middleware."
requires-python = ">=3.10"
keywords = ["portfolio", "cms", "sqlalchemy", "pydantic", "wsgi", "metrics", "audit"]
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
    "Topic :: Internet :: WWW/HTTP :: Dynamic Content :: Content Management System",
]
dependencies = [
    "pydantic>=2.0",
    "requests>=2.28",
    "sqlalchemy>=2.0",
]

[project.optional-dependencies]
test = [
    "pytest>=7.0",
    "responses>=0.23",
]

[tool.hatch.build.targets.wheel]
packages = ["folio_backend"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
