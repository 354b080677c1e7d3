"""Enumerations for the core app."""

from core.enums.delivery import DeliveryOutcome, FailureKind, MetricType

__all__ = ["DeliveryOutcome", "FailureKind", "MetricType"]
