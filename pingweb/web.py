"""Auto-refreshing HTML view of the log store."""

import html

from fastapi import FastAPI
from fastapi.responses import HTMLResponse

from pingweb.config import MonitorConfig
from pingweb.logstore import LogStore

APP_TITLE = "pingweb"

PAGE_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8">
  <meta http-equiv="refresh" content="__REFRESH__">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>Ping Monitor Panel</title>
  <style>
    body { font-family: Arial, sans-serif; background: #f4f7fa; margin:0; padding:20px; }
    .container { max-width:800px; margin:auto; }
    h1 { text-align:center; color:#333; }
    .card { background:#fff; border-radius:8px; box-shadow:0 2px 5px rgba(0,0,0,0.1); margin-bottom:20px; padding:15px; }
    .card h2 { margin-top:0; color:#444; }
    .card h2.loss { color:#c0392b; }
    pre { background:#272822; color:#f8f8f2; padding:10px; border-radius:4px; overflow-x:auto; }
  </style>
</head>
<body>
  <div class="container">
    <h1>Ping Monitor to __TARGET__</h1>
    <div class="card">
      <h2>Latest Ping Results</h2>
      <pre id="ping-log">__PING_LOG__</pre>
    </div>
    <div class="card">
      <h2 class="loss">Packet Loss Log</h2>
      <pre id="loss-log">__LOSS_LOG__</pre>
    </div>
  </div>
</body>
</html>
"""


def render_page(config: MonitorConfig, store: LogStore) -> str:
    snapshot = store.snapshot()
    page = PAGE_TEMPLATE.replace("__REFRESH__", str(config.refresh_seconds))
    page = page.replace("__PING_LOG__", html.escape(snapshot.ping_text()))
    page = page.replace("__LOSS_LOG__", html.escape(snapshot.loss_text()))
    page = page.replace("__TARGET__", html.escape(config.target))
    return page


def create_app(config: MonitorConfig, store: LogStore) -> FastAPI:
    """Build the single-route web application."""
    app = FastAPI(title=APP_TITLE, docs_url=None, redoc_url=None, openapi_url=None)

    @app.get("/", response_class=HTMLResponse)
    def index():
        return HTMLResponse(render_page(config, store))

    return app
