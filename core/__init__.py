"""AdForge project package.

The Celery app is imported here so the publishing, asset and credit
tasks declared with @shared_task register against it on startup.
"""

from .celery import app as celery_app  # noqa: F401

__all__ = ("celery_app",)
