[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "chatschema"
version = "0.1.0"
description = "Versioned PostgreSQL schema migrations for an end-to-end encrypted chat service"
requires-python = ">=3.10"
dependencies = [
    "sqlalchemy>=2.0",
]
keywords = ["migrations", "schema", "postgresql", "sqlalchemy", "chat", "ddl"]
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
    "Topic :: Database",
]

[project.optional-dependencies]
test = [
    "pytest>=7",
]

[project.scripts]
chatschema = "chatschema.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["chatschema"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
