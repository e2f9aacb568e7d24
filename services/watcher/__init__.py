"""
Console client that follows a dashboard server.
"""
