"""
WebSocket handlers for real-time dashboard updates.

This package provides the push endpoint and the connection manager that
broadcasts a fresh snapshot after every committed write.

"""
