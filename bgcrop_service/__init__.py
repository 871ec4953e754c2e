"""
Background-removal and crop microservice package.

Exposes the remove.bg client, the local crop helpers, and the FastAPI
application that serves both.
"""

