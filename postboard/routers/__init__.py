"""
FastAPI routers grouped by resource (accounts, microposts).

Each file inside this package exposes an APIRouter that is included by the
application factory (app.py). Routers fetch repositories from ``app.state``
and let RepositoryError subclasses bubble up to the app's exception handler.
"""
