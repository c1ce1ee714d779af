"""Marketplace FastAPI application.

Storefront web server that processes commands synchronously via HTTP.

Usage:
    uvicorn app:app --app-dir src --host 0.0.0.0 --port 8000 --reload
"""

from marketplace.api.application import create_app
from marketplace.domain import marketplace

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# Initialized at module level so uvicorn workers share it. PROTEAN_ENV and
# LOG_LEVEL select the logging setup (see marketplace.utils.logging).
marketplace.init()

app = create_app()
