"""FastAPI REST API for urlhook.

Exposes the send triggers, tab registration, queue and history
management and delivery settings over HTTP.

Example:
    ```python
    import uvicorn
    from urlhook.api import create_app

    app = create_app()
    uvicorn.run(app, host="127.0.0.1", port=8000)
    ```

Or run directly:
    ```bash
    uvicorn urlhook.api:app --reload
    ```
"""

from .app import app, create_app
from .router import router

__all__ = [
    "app",
    "create_app",
    "router",
]
