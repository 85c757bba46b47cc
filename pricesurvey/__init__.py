"""Field price survey: offline-first submission delivery and its collaborator API."""

__version__ = "0.1.0"
