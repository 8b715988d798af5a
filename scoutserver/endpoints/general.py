from fastapi import APIRouter, Depends
from starlette.responses import HTMLResponse

from scoutserver.dependencies import get_scouting_config
from scoutserver.enums import ScoutingConfig

router = APIRouter()

STATUS_PAGE = """
    <!doctype html>
    <html>
    <head>
        <meta charset="utf-8">
        <title>API Status</title>
        <style>
            :root{ --bg1:#140a2a; --bg2:#1f0b46; --ink:#ffffff; --ok:#8b5cf6; }
            *{box-sizing:border-box}
            html,body{height:100%}
            body{
                margin:0; color:var(--ink);
                background: linear-gradient(135deg, var(--bg1), var(--bg2)) fixed;
                display:flex; align-items:center; justify-content:center;
                font:16px/1.5 system-ui,Segoe UI,Roboto,Helvetica,Arial;
            }
            .card{
                background: rgba(255,255,255,0.06);
                border: 1px solid rgba(139,92,246,0.35);
                border-radius: 16px; padding: 42px 64px; text-align:center;
            }
            h1{ margin:0 0 8px; font-size:28px }
            .status{
                display:inline-block; font-weight:700; font-size:14px;
                padding:8px 14px; border-radius:999px; background: var(--ok); color:#0b0420;
            }
            .links{ margin-top:14px }
            .links a{ color:#c4b5fd; text-decoration:none; margin:0 10px; font-size:14px }
        </style>
    </head>
    <body>
        <div class="card">
            <h1>Scouting Server is Online</h1>
            <div class="status">STATUS: OK</div>
            <div class="links">
                <a href="/docs">Swagger UI</a>
                <a href="/api/health">Health</a>
                <a href="/api/scouting-types">Scouting types</a>
            </div>
        </div>
    </body>
    </html>
"""

# Served at `/` only when no client bundle is installed in the public directory.
status_router = APIRouter()


@status_router.get("/", response_class=HTMLResponse, include_in_schema=False)
def root():
    return STATUS_PAGE


@router.get("/ping")
def ping():
    return {"ping": "pong"}


@router.get("/api/health")
async def health(config: ScoutingConfig = Depends(get_scouting_config)):
    return {"status": "ok", "scoutingTypes": len(config.scouting_types)}
