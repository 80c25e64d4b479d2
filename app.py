# app.py
# Operator surface: run/stop the watcher in-process, read rolling logs,
# edit wallets.json.
import asyncio
import json
import logging
import os
from contextlib import asynccontextmanager, suppress
from typing import Any, Callable, Dict, List, Optional

import uvicorn
from fastapi import Body, FastAPI, HTTPException
from pydantic import BaseModel

from core.engine import WatchEngine
from core.notifier import Notifier, build_notifier
from log_setup import RecentLogHandler, setup_logging
from settings import WatchSettings
from wallet_config import load_wallets, wallets_from_json

# ============================================================
# ENV / CONFIG
# ============================================================

WALLETS_CONFIG = os.getenv("WALLETS_CONFIG", "wallets.json").strip() or "wallets.json"
WALLETS_FILE = os.getenv("WALLETS_FILE", "wallet-addresses").strip() or "wallet-addresses"
AUTO_START = os.getenv("WATCH_AUTOSTART", "false").strip().lower() == "true"

logger = logging.getLogger("app")


class StartRequest(BaseModel):
    only: Optional[str] = None
    interval: Optional[float] = None
    usd_delta: Optional[float] = None
    concurrency: Optional[int] = None


class WatcherService:
    """One in-process watcher task at a time."""

    def __init__(self, config_path: str, file_path: str,
                 notifier_factory: Callable[[], Notifier] = build_notifier,
                 base_settings: Optional[WatchSettings] = None):
        self.config_path = config_path
        self.file_path = file_path
        self.notifier_factory = notifier_factory
        self.base_settings = base_settings or WatchSettings.from_env()
        self.engine: Optional[WatchEngine] = None
        self._task: Optional[asyncio.Task] = None
        self._stop: Optional[asyncio.Event] = None
        self.stop_timeout = 5.0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self, req: Optional[StartRequest] = None) -> Dict[str, Any]:
        if self.running:
            return {"ok": False, "message": "already running"}
        overrides = req.model_dump() if req else {}
        settings = self.base_settings.with_overrides(**overrides)
        wallets = load_wallets((), self.file_path, self.config_path)
        if not wallets:
            return {"ok": False, "message": "no valid wallets configured"}
        try:
            notifier = self.notifier_factory()
        except ValueError as e:
            return {"ok": False, "message": str(e)}

        self.engine = WatchEngine(wallets, settings, notifier)
        self._stop = asyncio.Event()
        self._task = asyncio.create_task(self.engine.run_forever(self._stop))
        self._task.add_done_callback(self._on_exit)
        logger.info("[watcher] started: %d wallet(s), interval %.0fs", len(wallets), settings.interval)
        return {"ok": True}

    def _on_exit(self, task: asyncio.Task) -> None:
        if not task.cancelled() and task.exception() is not None:
            logger.error("[watcher] exited with error: %s", task.exception())
        else:
            logger.info("[watcher] exited")

    async def stop(self) -> Dict[str, Any]:
        if not self.running:
            return {"ok": False, "message": "not running"}
        task = self._task
        self._stop.set()
        done, _ = await asyncio.wait({task}, timeout=self.stop_timeout)
        if not done:
            # a cycle is mid-flight; don't wait for slow RPCs
            task.cancel()
            with suppress(asyncio.CancelledError):
                await task
        self._task = None
        return {"ok": True}

    def status(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"running": self.running}
        if self.engine is not None:
            out["wallets"] = len(self.engine.wallets)
            out["summary"] = dict(self.engine.summary)
            out["last_cycle_at"] = self.engine.last_cycle_at
        return out

    def read_config(self) -> List[Any]:
        if not os.path.exists(self.config_path):
            return []
        with open(self.config_path, "r", encoding="utf-8") as f:
            return json.load(f)

    def write_config(self, data: List[Any]) -> None:
        wallets_from_json(data)  # raises ValueError on a bad root
        tmp = self.config_path + ".tmp"
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
        os.replace(tmp, self.config_path)


log_buffer = RecentLogHandler()


def create_app(service: Optional[WatcherService] = None) -> FastAPI:
    svc = service or WatcherService(WALLETS_CONFIG, WALLETS_FILE)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        root = logging.getLogger()
        if not root.handlers:
            setup_logging()
        if log_buffer not in root.handlers:
            root.addHandler(log_buffer)
        if AUTO_START:
            svc.start()
        try:
            yield
        finally:
            if svc.running:
                await svc.stop()

    app = FastAPI(lifespan=lifespan)
    app.state.watcher = svc

    @app.get("/health")
    def health():
        return {"ok": True}

    @app.get("/api/status")
    def status():
        return svc.status()

    @app.post("/api/watcher/start")
    async def start(req: Optional[StartRequest] = None):
        return svc.start(req)

    @app.post("/api/watcher/stop")
    async def stop():
        return await svc.stop()

    @app.get("/api/wallets")
    def get_wallets():
        try:
            return svc.read_config()
        except (OSError, ValueError) as e:
            raise HTTPException(status_code=500, detail=str(e))

    @app.post("/api/wallets")
    def put_wallets(data: Any = Body(...)):
        try:
            svc.write_config(data)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        except OSError as e:
            raise HTTPException(status_code=500, detail=str(e))
        return {"ok": True}

    @app.get("/api/logs")
    def logs(limit: int = 200):
        limit = max(1, min(1000, limit))
        return {"lines": log_buffer.tail(limit)}

    return app


app = create_app()


if __name__ == "__main__":
    setup_logging()
    uvicorn.run(app, host="0.0.0.0", port=int(os.environ.get("PORT", "4000")))
