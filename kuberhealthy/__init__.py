"""Kubernetes health check logic, workload state records, metrics and CRD generation."""

__version__ = "2.0.0"