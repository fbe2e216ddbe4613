"""Connector for the web API — liveness probe and fleet topology."""

from .client import ApiClient, ApiError, ApiOfflineError
