"""
Dashboard server: FastAPI application, server context and entry point.
"""
