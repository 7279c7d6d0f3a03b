"""
Serving — FastAPI application that triggers a sync run over HTTP.

Deploy it behind any ASGI server (e.g. ``uvicorn drive_sync.serving.app:app``)
and point the scheduler at ``POST /sync``.
"""
