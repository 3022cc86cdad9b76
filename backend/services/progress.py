"""Fan-out of job progress events to WebSocket subscribers."""

from __future__ import annotations

import asyncio
from collections import defaultdict
from typing import Any
from uuid import uuid4

from fastapi import WebSocket

from shared.logging_utils import setup_logging
from shared.models import ProgressUpdate

logger = setup_logging("progress-broker")


class ProgressBroker:
    """Track WebSocket connections and which jobs each one follows."""

    def __init__(self) -> None:
        self._connections: dict[str, WebSocket] = {}
        self._job_subscriptions: dict[str, set[str]] = defaultdict(set)
        self._client_jobs: dict[str, set[str]] = defaultdict(set)
        self._latest: dict[str, dict[str, Any]] = {}
        self._lock = asyncio.Lock()

    async def connect(self, websocket: WebSocket, client_id: str | None = None) -> str:
        """Accept the socket and register it under a client ID."""
        client_key = client_id or str(uuid4())
        await websocket.accept()
        async with self._lock:
            self._connections[client_key] = websocket
        return client_key

    async def disconnect(self, client_id: str) -> None:
        """Drop the client and every subscription it holds."""
        websocket: WebSocket | None = None
        async with self._lock:
            websocket = self._connections.pop(client_id, None)
            for job_id in self._client_jobs.pop(client_id, set()):
                subscribers = self._job_subscriptions.get(job_id)
                if subscribers:
                    subscribers.discard(client_id)
                    if not subscribers:
                        self._job_subscriptions.pop(job_id, None)
        if websocket:
            try:
                await websocket.close()
            except RuntimeError:
                # Already closed by the peer
                pass

    async def subscribe(self, client_id: str, job_id: str) -> None:
        """Follow a job; the most recent event, if any, is replayed at once."""
        async with self._lock:
            websocket = self._connections.get(client_id)
            if websocket is None:
                raise RuntimeError("Client not connected")
            self._job_subscriptions[job_id].add(client_id)
            self._client_jobs[client_id].add(job_id)
            latest = self._latest.get(job_id)

        if latest is not None:
            await self._send(client_id, websocket, latest)

    async def publish(self, update: ProgressUpdate) -> None:
        """Send an event to every subscriber of its job."""
        message = update.to_message()
        recipients: list[tuple[str, WebSocket]] = []
        async with self._lock:
            self._latest[update.job_id] = message
            for client_id in self._job_subscriptions.get(update.job_id, set()):
                websocket = self._connections.get(client_id)
                if websocket:
                    recipients.append((client_id, websocket))

        for client_id, websocket in recipients:
            await self._send(client_id, websocket, message)

    def latest(self, job_id: str) -> dict[str, Any] | None:
        return self._latest.get(job_id)

    async def forget(self, job_id: str) -> None:
        """Discard the cached event of a deleted job."""
        async with self._lock:
            self._latest.pop(job_id, None)

    async def _send(self, client_id: str, websocket: WebSocket, message: dict[str, Any]) -> None:
        try:
            await websocket.send_json(message)
        except Exception as exc:
            logger.info("Dropping progress subscriber %s: %s", client_id, exc)
            await self.disconnect(client_id)

    async def reset(self) -> None:
        """Close every connection and clear all state."""
        async with self._lock:
            connections = list(self._connections.values())
            self._connections.clear()
            self._job_subscriptions.clear()
            self._client_jobs.clear()
            self._latest.clear()

        for websocket in connections:
            try:
                await websocket.close()
            except RuntimeError:
                pass
