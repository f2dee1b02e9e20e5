"""
asgi.py -- ASGI entry point for UserAPI.

Run with:  uvicorn asgi:app --host 0.0.0.0 --port 3000 --proxy-headers

--proxy-headers makes uvicorn take the client address from X-Forwarded-For
when running behind the reverse proxy, so rate limits key on the real client
rather than the proxy.
"""

from api.main import app

__all__ = ["app"]
