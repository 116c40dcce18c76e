from __future__ import annotations

from .api_client import APIClient, Route
from .categories import CategoryResolver
from .runs import RunOrchestrator

__all__ = ("APIClient", "CategoryResolver", "Route", "RunOrchestrator")
