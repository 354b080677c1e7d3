"""Production entry point for the operator API.

Runs ``delivery_service.wsgi`` under Gunicorn. Retry workers are separate
processes (``manage.py rqworker email-retry`` and ``manage.py rqscheduler``)
and are not started here.
"""

import os
import sys

from gunicorn.app.wsgiapp import run


def build_gunicorn_argv() -> list[str]:
    """Return Gunicorn arguments, tunable through GUNICORN_* variables."""
    return [
        "gunicorn",
        "delivery_service.wsgi:application",
        "--bind",
        os.getenv("GUNICORN_BIND", "0.0.0.0:8000"),
        "--workers",
        os.getenv("GUNICORN_WORKERS", "2"),
        "--threads",
        os.getenv("GUNICORN_THREADS", "2"),
        "--timeout",
        os.getenv("GUNICORN_TIMEOUT", "60"),
        "--access-logfile",
        "-",
        "--error-logfile",
        "-",
    ]


def main():
    """Start the operator API with Gunicorn."""
    sys.argv = build_gunicorn_argv()
    run()


if __name__ == "__main__":
    main()
