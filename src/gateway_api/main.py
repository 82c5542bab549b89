import asyncio
import logging
from contextlib import asynccontextmanager
from textwrap import dedent

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.routing import APIRoute
from starlette.exceptions import HTTPException as StarletteHTTPException

from gateway_api.adapters.queue import BaseQueueClient, SQSQueueClient
from gateway_api.aws_clients import create_s3_client
from gateway_api.config.settings import Settings, get_settings
from gateway_api.errors import (
    ObjectNotFoundError,
    TransportError,
    ValidationError,
    handle_broad_exceptions,
    handle_http_errors,
    handle_object_not_found,
    handle_request_validation_errors,
    handle_transport_errors,
    handle_validation_errors,
)
from gateway_api.poller import QueuePoller
from gateway_api.realtime.broadcaster import Broadcaster
from gateway_api.realtime.transport import ConnectionManager
from gateway_api.routers.files import router as files_router
from gateway_api.routers.health import router as health_router
from gateway_api.routers.messages import router as messages_router
from gateway_api.routers.realtime import router as realtime_router
from gateway_api.services.messages import MessageProducer

# Set up logging
logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=level, format=LOG_FORMAT)


async def stop_poller(task: asyncio.Task, stop_event: asyncio.Event, timeout: float) -> None:
    """Ask the poller to finish its current long poll, cancelling it if that takes longer than `timeout`."""
    stop_event.set()
    try:
        await asyncio.wait_for(task, timeout=timeout)
    except asyncio.TimeoutError:
        logger.warning(f"SQS poller did not stop within {timeout}s, cancelled")
    except asyncio.CancelledError:
        logger.info("SQS poller cancelled")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Run the queue poller as a background task for the lifetime of the app."""
    settings: Settings = app.state.settings
    stop_event = asyncio.Event()
    if settings.poller_enabled:
        app.state.poller_task = asyncio.create_task(app.state.poller.run(stop_event), name="sqs-poller")
    try:
        yield
    finally:
        task = app.state.poller_task
        if task is not None:
            await stop_poller(task, stop_event, settings.poller_shutdown_timeout_seconds)
            app.state.poller_task = None


def create_app(
    settings: Settings | None = None,
    queue_client: BaseQueueClient | None = None,
    s3_client=None,
) -> FastAPI:
    """
    Create a FastAPI application.

    AWS clients are built here, once, from the validated settings; a missing
    region, credential, queue URL or bucket name raises ConfigurationError
    before the server starts.
    """
    settings = settings or get_settings()

    if queue_client is None:
        queue_client = SQSQueueClient.from_settings(settings)
    if s3_client is None:
        s3_client = create_s3_client(settings)

    transport = ConnectionManager(send_timeout=settings.realtime_send_timeout_seconds)
    producer = MessageProducer(queue_client)
    broadcaster = Broadcaster(transport, producer)
    poller = QueuePoller(
        queue_client,
        broadcaster,
        max_messages=settings.poll_max_messages,
        error_backoff_seconds=settings.poll_error_backoff_seconds,
    )

    app = FastAPI(
        title="S3/SQS Gateway",
        summary="Upload files to S3 and relay SQS messages to browsers in realtime",
        version=settings.version,
        description=dedent(
            """\
        | Helpful Links | Notes |
        | --- | --- |
        | [Dashboard](/dashboard) | Live view of messages relayed from the queue |
        | [Health](/health) | Uptime, poller state and connected clients |
        """
        ),
        docs_url="/docs",
        generate_unique_id_function=custom_generate_unique_id,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=False,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    app.state.settings = settings
    app.state.queue_client = queue_client
    app.state.s3_client = s3_client
    app.state.transport = transport
    app.state.producer = producer
    app.state.broadcaster = broadcaster
    app.state.poller = poller
    app.state.poller_task = None

    app.include_router(files_router, prefix="/api", tags=["files"])
    app.include_router(messages_router, prefix="/api", tags=["messages"])
    app.include_router(realtime_router, tags=["realtime"])
    app.include_router(health_router, tags=["health"])

    app.add_exception_handler(StarletteHTTPException, handle_http_errors)
    app.add_exception_handler(ValidationError, handle_validation_errors)
    app.add_exception_handler(ObjectNotFoundError, handle_object_not_found)
    app.add_exception_handler(TransportError, handle_transport_errors)
    app.add_exception_handler(RequestValidationError, handle_request_validation_errors)
    app.middleware("http")(handle_broad_exceptions)

    return app


def custom_generate_unique_id(route: APIRoute):
    """
    Generate prettier `operationId`s in the OpenAPI schema.

    These become the function names in generated client SDKs.
    """
    return f"{route.tags[0]}-{route.name}"


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    configure_logging(settings.log_level)
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port)
