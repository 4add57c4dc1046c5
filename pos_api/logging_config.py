from __future__ import annotations

import json
import logging
import time

from fastapi import FastAPI, Request

from pos_api.config import settings

request_logger = logging.getLogger('pos_api.requests')


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        data = {
            'level': record.levelname,
            'message': record.getMessage(),
            'logger': record.name,
            'time': self.formatTime(record),
        }
        if record.exc_info:
            data['exc_info'] = self.formatException(record.exc_info)
        return json.dumps(data)


def setup_logging(level: str | None = None, *, json_output: bool | None = None) -> None:
    lvl = getattr(logging, (level or settings.log_level).upper(), logging.INFO)
    use_json = settings.log_json if json_output is None else json_output
    root = logging.getLogger()
    root.handlers.clear()
    handler = logging.StreamHandler()
    if use_json:
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter('%(asctime)s %(levelname)s %(name)s: %(message)s'))
    root.addHandler(handler)
    root.setLevel(lvl)


def install_request_logger(app: FastAPI) -> None:
    @app.middleware('http')
    async def log_requests(request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000
        request_logger.info('%s %s %s %.0fms', request.method, request.url.path, response.status_code, elapsed_ms)
        return response
