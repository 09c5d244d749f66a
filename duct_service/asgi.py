# asgi.py
"""
ASGI entrypoint para Uvicorn.

Exportamos tanto `fastapi_app` como `app` para que funcionen indistintamente:
  - uvicorn duct_service.asgi:fastapi_app ...
  - uvicorn duct_service.asgi:app ...
"""
from duct_service.app import app as fastapi_app

app = fastapi_app
