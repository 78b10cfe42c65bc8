"""Runnable applications (``python -m apps.<name>``)."""
