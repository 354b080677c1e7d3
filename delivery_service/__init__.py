"""Django project package for the reliable delivery service."""
