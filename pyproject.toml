[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "outlinekit"
version = "0.1.0"
description = "Transport dialers from text configs, a local HTTP proxy and DNS resolver connectivity checks"
requires-python = ">=3.10"
dependencies = [
    "dnspython",
]
keywords = [
    "proxy",
    "socks5",
    "http-connect",
    "dns",
    "connectivity",
    "dialer",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: Proxy Servers",
    "Topic :: Internet :: Name Service (DNS)",
    "Topic :: System :: Networking",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
fetch-proxy = "outlinekit.fetch_proxy:main"
http2transport = "outlinekit.http2transport:main"
outline-connectivity = "outlinekit.outline_connectivity:main"
outline-fetch = "outlinekit.outline_fetch:main"

[tool.hatch.build.targets.wheel]
packages = ["outlinekit"]

[tool.hatch.build.targets.sdist]
include = [
    "outlinekit",
    "tests",
    "pyproject.toml",
    "README.md",
]

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
