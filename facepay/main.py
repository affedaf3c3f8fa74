"""FastAPI entry-point for the facepay controller."""
from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional, Union

import psutil
from fastapi import FastAPI, Request, WebSocket, WebSocketDisconnect, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse, StreamingResponse
from pydantic import BaseModel

from . import __version__
from .config import Settings, get_settings
from .errors import InvalidTransition
from .logging_config import configure_logging
from .state import Currency
from .view import WorkflowView
from .workflow import PaymentWorkflow

logger = logging.getLogger(__name__)


class AmountUpdate(BaseModel):
    amount: Union[str, int, float] = ""


class CurrencyUpdate(BaseModel):
    currency: Optional[Currency] = None


def create_app(settings: Optional[Settings] = None, *, workflow: Optional[PaymentWorkflow] = None) -> FastAPI:
    settings = settings or (workflow.settings if workflow else get_settings())
    configure_logging(settings)
    workflow = workflow or PaymentWorkflow(settings=settings)

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        try:
            await workflow.start()
            logger.info("Application started successfully")
        except Exception as e:
            logger.exception(f"Failed to start workflow: {e}")
        try:
            yield
        finally:
            await workflow.stop()
            logger.info("Application shutdown complete")

    app = FastAPI(title="facepay-controller", version=__version__, lifespan=lifespan)
    app.state.workflow = workflow

    @app.exception_handler(InvalidTransition)
    async def invalid_transition_handler(request: Request, exc: InvalidTransition) -> JSONResponse:
        logger.warning(f"Rejected intent {request.url.path}: {exc}")
        return JSONResponse(status_code=status.HTTP_409_CONFLICT, content={"detail": exc.user_message})

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        """Handle request validation errors gracefully."""
        logger.warning(f"Validation error in {request.url.path}: {exc}")
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={"detail": str(exc)},
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> PlainTextResponse:
        """Catch-all exception handler to prevent application crashes."""
        logger.exception(f"Unhandled exception in {request.url.path}: {exc}")
        return PlainTextResponse(
            f"Internal server error: {str(exc)}",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/healthz")
    async def healthcheck() -> JSONResponse:
        return JSONResponse(
            {
                "status": "ok",
                "verification": workflow.verification.status.value,
                "submission": workflow.submission.phase.value,
            }
        )

    @app.get("/debug/performance")
    async def debug_performance() -> JSONResponse:
        """Get real-time CPU and memory usage."""
        try:
            cpu_percent = psutil.cpu_percent(interval=0.1)
            memory = psutil.virtual_memory()
            return JSONResponse({
                "cpu_percent": round(cpu_percent, 1),
                "memory_percent": round(memory.percent, 1),
                "memory_used_mb": round(memory.used / (1024 * 1024), 1),
                "memory_total_mb": round(memory.total / (1024 * 1024), 1),
            })
        except Exception as e:
            logger.error(f"Performance monitoring error: {e}")
            return JSONResponse({"error": str(e)}, status_code=500)

    @app.get("/state", response_model=WorkflowView)
    async def get_state() -> WorkflowView:
        return workflow.view()

    @app.post("/verification/start", response_model=WorkflowView)
    async def start_verification() -> WorkflowView:
        await workflow.verification.start_verification()
        return workflow.view()

    @app.post("/verification/confirm", response_model=WorkflowView)
    async def confirm_verification() -> WorkflowView:
        await workflow.verification.confirm_verification()
        return workflow.view()

    @app.post("/verification/cancel", response_model=WorkflowView)
    async def cancel_verification() -> WorkflowView:
        await workflow.verification.cancel_verification()
        return workflow.view()

    @app.get("/verification/preview")
    async def preview_stream() -> StreamingResponse:
        """MJPEG stream of the live camera while a capture is active."""
        if not workflow.verification.capture_active:
            raise InvalidTransition("No camera preview is active.")
        boundary = "frame"

        async def frame_iterator() -> AsyncIterator[bytes]:
            try:
                async for frame in workflow.preview_stream():
                    header = (
                        f"--{boundary}\r\n"
                        f"Content-Type: image/jpeg\r\n"
                        f"Content-Length: {len(frame)}\r\n\r\n"
                    ).encode("ascii")
                    yield header + frame + b"\r\n"
            except Exception as e:
                logger.error(f"Preview stream error: {e}")

        media_type = f"multipart/x-mixed-replace; boundary={boundary}"
        return StreamingResponse(frame_iterator(), media_type=media_type)

    @app.put("/payment/amount", response_model=WorkflowView)
    async def update_amount(payload: AmountUpdate) -> WorkflowView:
        await workflow.submission.update_amount(str(payload.amount))
        return workflow.view()

    @app.put("/payment/currency", response_model=WorkflowView)
    async def update_currency(payload: CurrencyUpdate) -> WorkflowView:
        await workflow.submission.update_currency(payload.currency)
        return workflow.view()

    @app.post("/payment/submit", response_model=WorkflowView)
    async def submit_payment() -> WorkflowView:
        await workflow.submission.submit()
        return workflow.view()

    @app.websocket("/ws/ui")
    async def ui_socket(ws: WebSocket) -> None:
        await ws.accept()
        queue = workflow.register_ui()

        async def pump_events() -> None:
            await ws.send_json({"type": "state", "source": "snapshot", "data": workflow.view().model_dump(mode="json")})
            while True:
                event = await queue.get()
                try:
                    await ws.send_json({"type": event.type, "source": event.source, "data": event.data})
                except Exception as e:
                    logger.debug(f"WebSocket send failed (client disconnected): {e}")
                    return

        sender = asyncio.create_task(pump_events(), name="ui-ws-sender")
        try:
            # Inbound messages are ignored; reading only detects the disconnect
            while True:
                message = await ws.receive()
                if message["type"] == "websocket.disconnect":
                    break
        except WebSocketDisconnect:
            pass
        except asyncio.CancelledError:
            pass
        except Exception as e:
            logger.error(f"Unexpected error in UI websocket: {e}")
        finally:
            sender.cancel()
            try:
                await sender
            except asyncio.CancelledError:
                pass
            except Exception as e:
                logger.debug(f"UI websocket sender ended with error: {e}")
            workflow.unregister_ui(queue)

    return app


app = create_app()
