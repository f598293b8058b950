[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "kuberhealthy"
version = "2.0.0"
description = "Kubernetes cluster health checks: workload state records, Prometheus and InfluxDB metrics, master election and check logic."
requires-python = ">=3.10"
dependencies = []
keywords = [
    "kubernetes",
    "health-check",
    "monitoring",
    "prometheus",
    "influxdb",
    "synthetic-monitoring",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: System Administrators",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Monitoring",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
kuberhealthy-generate-crds = "kuberhealthy.crdgen:main"

[tool.hatch.build.targets.wheel]
packages = ["kuberhealthy"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
