[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "mu"
version = "0.1.0"
description = "Building blocks for Terraform pull request automation in GitHub Actions: plan, apply, lock, unlock, import and state rm for the projects a pull request touches."
requires-python = ">=3.10"
dependencies = [
    "pyyaml",
]
keywords = [
    "terraform",
    "github-actions",
    "pull-request",
    "automation",
    "infrastructure-as-code",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Build Tools",
    "Topic :: System :: Systems Administration",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["mu"]

[tool.pytest.ini_options]
testpaths = ["tests"]
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
