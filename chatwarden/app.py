"""Health check HTTP app for hosting platforms."""

from fastapi import FastAPI
from fastapi.responses import PlainTextResponse

app = FastAPI(title="chatwarden")


@app.get("/", response_class=PlainTextResponse)
async def health() -> str:
    return "ok"
