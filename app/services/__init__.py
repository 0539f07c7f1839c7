"""
TDMS Analytics - Services Package

Business logic services.
"""

from app.services.scope_resolver import (
    GeographicScope,
    RequesterAddress,
    ScopeNarrowing,
    ScopeResolver,
    scope_contains,
)
from app.services.metrics_service import MetricsService
from app.services.submission_service import SubmissionService
from app.services.establishment_service import EstablishmentService
from app.services.settings_service import SettingsService

__all__ = [
    "GeographicScope",
    "RequesterAddress",
    "ScopeNarrowing",
    "ScopeResolver",
    "scope_contains",
    "MetricsService",
    "SubmissionService",
    "EstablishmentService",
    "SettingsService",
]
