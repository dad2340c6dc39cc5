"""
FastAPI REST Endpoints
======================

REST API endpoints for HTTP access to ZPL rendering.

Endpoints:
- POST /render/{width}/{height}/{dpmm}: ZPL to PNG conversion
- GET /health: Health check endpoint
"""
