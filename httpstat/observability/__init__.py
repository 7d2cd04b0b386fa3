"""Logging setup shared by the middleware, the sampler and the demo app.

Everything logs through structlog; stdlib records (uvicorn included) are
rendered by the same JSON formatter.
"""
