"""
TDMS Analytics - Routers Package

FastAPI route handlers.

Routers:
- analytics: Scope-filtered rollups (monthly, nationality, demographics, areas)
- submissions: Compliance list and penalty payment
- admin: Establishment approval workflow and settings
"""

from app.routers import analytics, submissions, admin

__all__ = ["analytics", "submissions", "admin"]
