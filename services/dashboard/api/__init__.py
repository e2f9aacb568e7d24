"""
REST API endpoints for the dashboard.

This package provides FastAPI routers for:
- Dashboard: Current snapshot for polling clients
- Admin: Store statistics, seeding, retention cleanup and ingest
- Health: Server health status

"""
