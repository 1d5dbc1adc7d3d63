from typing import Optional

from fastapi import APIRouter, HTTPException, Query, Request
from pydantic import BaseModel

from gold_monitor.engine.runtime import MonitorRuntime

router = APIRouter()


class ConfigPayload(BaseModel):
    buy_avg_price: Optional[str] = None
    target_buy_price: Optional[str] = None
    target_sell_price: Optional[str] = None
    interval_seconds: Optional[str] = None
    stats_window_minutes: Optional[str] = None
    notify_enabled: Optional[bool] = None
    notify_key: Optional[str] = None


def _runtime(request: Request) -> MonitorRuntime:
    return request.app.state.runtime


def _redacted_form(runtime: MonitorRuntime) -> dict[str, object]:
    form = runtime.config_source.form().model_dump()
    if form.get("notify_key"):
        form["notify_key"] = "***"
    return form


@router.get("/api/status")
async def get_status(request: Request):
    runtime = _runtime(request)
    return {
        "status": runtime.loop.status,
        **runtime.display.snapshot(),
        "failures": runtime.state.failure_flags(),
        "config": _redacted_form(runtime),
    }


@router.get("/api/logs")
async def get_logs(request: Request, limit: int = Query(default=200, ge=1, le=10000)):
    return {"lines": _runtime(request).log.lines(limit)}


@router.put("/api/config")
async def update_config(request: Request, payload: ConfigPayload):
    runtime = _runtime(request)
    fields = payload.model_dump(exclude_none=True)
    runtime.config_source.update(**fields)
    return {"ok": True, "config": _redacted_form(runtime)}


@router.post("/api/monitor/start")
async def start_monitor(request: Request):
    runtime = _runtime(request)
    ok, message = runtime.loop.start()
    if not ok:
        raise HTTPException(status_code=409, detail=message)
    return {"ok": True, "status": runtime.loop.status, "message": message}


@router.post("/api/monitor/pause")
async def pause_monitor(request: Request):
    runtime = _runtime(request)
    changed = runtime.loop.pause()
    return {"ok": True, "changed": changed, "status": runtime.loop.status}


@router.post("/api/monitor/toggle")
async def toggle_monitor(request: Request):
    runtime = _runtime(request)
    ok, message = runtime.loop.toggle()
    if not ok:
        raise HTTPException(status_code=409, detail=message)
    return {"ok": True, "status": runtime.loop.status, "message": message}
