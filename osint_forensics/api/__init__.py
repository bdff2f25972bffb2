"""
Investigation API Package
=========================

FastAPI application exposing the investigation session over HTTP and
WebSocket.
"""
