"""Realtime channel - WebSocket endpoint streaming task events.

Any client may connect and receive events. A connection carrying a session
token (``access_token`` cookie or ``?token=``) may also emit createTask,
updateTask and deleteTask, which are persisted through TaskService exactly
like the REST routes and therefore broadcast the same events.
"""

import asyncio
import logging
from typing import Any, TypeVar

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core import get_session_factory, settings
from app.core.errors import AppError, AuthError, ValidationError, format_validation_errors
from app.schemas.task import TaskCreate, TaskUpdate
from app.services.auth import AuthService
from app.services.broadcaster import RealtimeConnection, get_broadcaster
from app.services.task import TaskService

logger = logging.getLogger(__name__)

ws_router = APIRouter(tags=["realtime"])

ModelT = TypeVar("ModelT", bound=BaseModel)

CLIENT_TASK_EVENTS = ("createTask", "updateTask", "deleteTask")


def parse_payload(model: type[ModelT], data: Any) -> ModelT:
    """Validate a client payload, raising the application ValidationError."""
    try:
        return model.model_validate(data)
    except PydanticValidationError as e:
        raise ValidationError(format_validation_errors(e.errors())) from e


async def _authenticate(
    token: str | None, session_factory: async_sessionmaker[AsyncSession]
) -> RealtimeConnection:
    """Build a connection, authenticated if ``token`` is a live session token."""
    conn = RealtimeConnection(token=token)
    if not token:
        return conn
    async with session_factory() as db:
        try:
            user = await AuthService(db).authorize(token)
            conn.user_id = user.user_id
        except AppError as e:
            logger.info(f"Realtime connection with rejected token: {e.message}")
    return conn


async def handle_task_event(
    conn: RealtimeConnection,
    event: str,
    data: Any,
    session_factory: async_sessionmaker[AsyncSession],
) -> None:
    """Persist a client-emitted task mutation on behalf of the connection's user.

    The token is re-authorized per event so a logout takes effect immediately.
    """
    if not conn.token:
        raise AuthError("Authentication required")
    if not isinstance(data, dict):
        raise ValidationError("Event data must be an object")

    async with session_factory() as db:
        user = await AuthService(db).authorize(conn.token)
        service = TaskService(db)

        if event == "createTask":
            await service.create(user.user_id, parse_payload(TaskCreate, data))
        elif event == "updateTask":
            task_id = data.get("taskId")
            if not task_id:
                raise ValidationError("Task ID is required")
            patch = {k: v for k, v in data.items() if k in ("title", "status")}
            await service.update(user.user_id, task_id, parse_payload(TaskUpdate, patch))
        elif event == "deleteTask":
            task_id = data.get("taskId")
            if not task_id:
                raise ValidationError("Task ID is required")
            await service.delete(user.user_id, task_id)


async def _send_error(websocket: WebSocket, status_code: int, message: str) -> None:
    await websocket.send_json({"event": "error", "data": {"status": status_code, "message": message}})


@ws_router.websocket("/ws")
async def task_stream(
    websocket: WebSocket,
    token: str | None = None,
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> None:
    """WebSocket endpoint for live task events.

    Messages sent are JSON objects ``{"event": ..., "data": ...}``.
    Clients may send ``{"event": "ping"}`` or one of the task mutation events.
    """
    await websocket.accept()

    session_token = websocket.cookies.get(settings.session_cookie_name) or token
    conn = await _authenticate(session_token, session_factory)
    conn.websocket = websocket

    broadcaster = get_broadcaster()
    connection_count = await broadcaster.register(conn)
    logger.info(
        f"Realtime client connected, total connections: {connection_count}",
        extra={"connection_id": conn.id},
    )

    try:
        # Send initial message
        await websocket.send_json(
            {
                "event": "connected",
                "data": {
                    "connectionId": conn.id,
                    "authenticated": conn.authenticated,
                    "userId": str(conn.user_id) if conn.user_id else None,
                },
            }
        )

        async def send_events() -> None:
            """Send queued broadcasts to the client."""
            while True:
                message = await conn.queue.get()
                try:
                    await websocket.send_json(message)
                except Exception as e:
                    logger.debug(f"Realtime send failed, closing sender: {e}")
                    break

        async def receive_messages() -> None:
            """Handle client events (ping and task mutations)."""
            while True:
                try:
                    message = await websocket.receive_json()
                except WebSocketDisconnect:
                    break
                except ValueError:
                    await _send_error(websocket, 400, "Messages must be JSON objects")
                    continue

                if not isinstance(message, dict):
                    await _send_error(websocket, 400, "Messages must be JSON objects")
                    continue

                event = message.get("event")
                if event == "ping":
                    await websocket.send_json({"event": "pong"})
                elif event in CLIENT_TASK_EVENTS:
                    try:
                        await handle_task_event(conn, event, message.get("data"), session_factory)
                    except AppError as e:
                        await _send_error(websocket, e.status_code, e.message)
                else:
                    await _send_error(websocket, 400, f"Unknown event: {event}")

        # Run both tasks concurrently with proper cleanup
        tasks: list[asyncio.Task] = []
        try:
            tasks.append(asyncio.create_task(send_events()))
            tasks.append(asyncio.create_task(receive_messages()))

            done, pending = await asyncio.wait(
                tasks,
                return_when=asyncio.FIRST_COMPLETED,
            )

            # Log exceptions from completed tasks (don't re-raise for graceful cleanup)
            for task in done:
                exc = task.exception() if not task.cancelled() else None
                if exc is not None and not isinstance(exc, WebSocketDisconnect):
                    logger.warning(f"Realtime task exception: {exc}")

            for task in pending:
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
        except Exception:
            # If an exception occurs at any point, ensure all tasks are cancelled
            for task in tasks:
                if not task.done():
                    task.cancel()
                    try:
                        await task
                    except asyncio.CancelledError:
                        pass
            raise

    except WebSocketDisconnect:
        logger.info("Realtime client disconnected", extra={"connection_id": conn.id})
    except Exception as e:
        logger.error(f"Realtime connection error: {e}", extra={"connection_id": conn.id})
    finally:
        remaining = await broadcaster.unregister(conn)
        logger.info(
            f"Realtime connection closed, remaining connections: {remaining}",
            extra={"connection_id": conn.id},
        )
