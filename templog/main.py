from __future__ import annotations

from fastapi import FastAPI

from templog.config import get_settings
from templog.handlers import pdf_handler, temperature_handler
from templog.logging_config import configure_logging

configure_logging(get_settings().log_level)

app = FastAPI(title="Temperature Log API")

app.include_router(temperature_handler.router)
app.include_router(pdf_handler.router)


@app.get("/healthz")
async def healthz():
    return {"status": "ok"}
