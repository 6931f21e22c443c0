"""System routes for health and diagnostics."""

import logging
from collections import deque
from typing import Annotated, List, Dict, Any
from datetime import datetime

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from ..dependencies import GraphServices, get_services

router = APIRouter()

# Global in-memory log buffer
LOG_BUFFER: deque = deque(maxlen=100)

_RECORD_ATTRS = {
    'args', 'asctime', 'created', 'exc_info', 'exc_text', 'filename',
    'funcName', 'levelname', 'levelno', 'lineno', 'module',
    'msecs', 'message', 'msg', 'name', 'pathname', 'process',
    'processName', 'relativeCreated', 'stack_info', 'thread', 'threadName',
    'taskName',
}


class LogEntry(BaseModel):
    timestamp: str
    level: str
    logger: str
    message: str
    extra: Dict[str, Any]


class HealthResponse(BaseModel):
    status: str
    panel: str
    resources: int


class MemoryLogHandler(logging.Handler):
    """Keeps the most recent log records for the diagnostics endpoint."""
    def emit(self, record):
        try:
            msg = self.format(record)
            extra = {k: v for k, v in record.__dict__.items() if k not in _RECORD_ATTRS}

            entry = {
                "timestamp": datetime.fromtimestamp(record.created).isoformat(),
                "level": record.levelname,
                "logger": record.name,
                "message": msg,
                "extra": {k: str(v) for k, v in extra.items()},
            }
            LOG_BUFFER.append(entry)
        except Exception:
            self.handleError(record)


memory_handler = MemoryLogHandler()
memory_handler.setFormatter(logging.Formatter('%(message)s'))


def install_log_buffer() -> None:
    """Attach the in-memory handler to the root logger once."""
    root = logging.getLogger()
    if memory_handler not in root.handlers:
        root.addHandler(memory_handler)


@router.get("/health", response_model=HealthResponse)
async def health(services: Annotated[GraphServices, Depends(get_services)]):
    """Health check endpoint."""
    return HealthResponse(
        status="healthy",
        panel=services.coordinator.state.value,
        resources=len(services.workspace),
    )


@router.get("/api/system/logs", response_model=List[LogEntry])
async def get_logs():
    """Retrieve recent log records."""
    return list(LOG_BUFFER)
