"""
FastAPI routers grouped by domain (auth, users).

Each file inside this package exposes an APIRouter that is included by
accounts.app.create_app. Routers only translate HTTP to service calls and
service results back to response envelopes.
"""
