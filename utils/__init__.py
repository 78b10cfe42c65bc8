"""Shared building blocks: configuration, logging, API client, schemas and storage."""
