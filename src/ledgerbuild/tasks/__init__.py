"""Build job scheduling."""

from ledgerbuild.tasks.runner import run_with_concurrency

__all__ = ["run_with_concurrency"]
