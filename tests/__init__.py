"""Test suite for the delivery service."""
