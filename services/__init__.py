"""
Service entry points for the live dashboard sync system.

Services:
    dashboard: FastAPI server with the metrics store, generator, REST API
        and WebSocket push
    watcher: Console client that follows the dashboard through the sync manager
"""
