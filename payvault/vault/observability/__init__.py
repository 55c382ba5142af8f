# MIT License
# Copyright (c) 2025 Hashborn

"""
Observability Module

Prometheus metrics for payvault.
"""

from .metrics import metrics_registry, attach_metrics, detach_metrics, update_metrics

__all__ = ['metrics_registry', 'attach_metrics', 'detach_metrics', 'update_metrics']
