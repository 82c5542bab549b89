# cli.py
import asyncio
import logging

import click

from gateway_api.adapters.queue import SQSQueueClient
from gateway_api.config.settings import get_settings
from gateway_api.errors import GatewayError
from gateway_api.main import configure_logging
from gateway_api.services.messages import MessageProducer

# Configure logging
logger = logging.getLogger(__name__)


def _mask(value):
    if not value:
        return value
    return f"{value[:4]}****" if len(value) > 4 else "****"


@click.group()
def cli():
    """CLI commands for the S3/SQS gateway"""
    pass


@cli.command()
@click.option("--host", default=None, help="Bind address (defaults to HOST)")
@click.option("--port", type=int, default=None, help="Bind port (defaults to PORT)")
@click.option("--reload/--no-reload", default=False, help="Reload on code changes")
def serve(host, port, reload):
    """Run the HTTP/WebSocket server and the queue poller"""
    import uvicorn

    settings = get_settings()
    configure_logging(settings.log_level)
    host = host or settings.host
    port = port or settings.port

    print(f"🚀 Server is running on port {port}")
    print(f"📍 Local: http://localhost:{port}")
    print(f"🌐 Dashboard: http://localhost:{port}/dashboard")

    uvicorn.run(
        "gateway_api.main:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        log_level=settings.log_level.lower(),
    )


@cli.command()
def show_config():
    """Show current configuration"""
    settings = get_settings()

    print("Current Configuration:")
    print(f"  AWS Region: {settings.aws_region}")
    print(f"  AWS Access Key ID: {_mask(settings.aws_access_key_id)}")
    print(f"  AWS Secret Access Key: {_mask(settings.aws_secret_access_key)}")
    print(f"  AWS Endpoint: {settings.aws_endpoint_url}")
    print(f"  S3 Bucket: {settings.s3_bucket_name}")
    print(f"  CloudFront Domain: {settings.cloudfront_domain}")
    print(f"  SQS Queue URL: {settings.sqs_queue_url}")
    print(f"  Poller Enabled: {settings.poller_enabled}")
    print(f"  Poll Batch Size: {settings.poll_max_messages}")
    print(f"  Poll Error Backoff: {settings.poll_error_backoff_seconds}s")
    print(f"  Long Poll Wait: {settings.sqs_wait_time_seconds}s")
    print(f"  Log Level: {settings.log_level}")


@cli.command()
@click.option("--text", required=True, help="Message text")
@click.option("--topic", default=None, help="Topic (defaults to general)")
def send_message(text, topic):
    """Queue one message for broadcast to dashboard clients"""
    settings = get_settings()
    configure_logging(settings.log_level)

    try:
        producer = MessageProducer(SQSQueueClient.from_settings(settings))
        message_id = asyncio.run(producer.send(text, topic))
    except GatewayError as e:
        raise click.ClickException(str(e))

    print(f"✅ Message queued: {message_id}")


if __name__ == "__main__":
    cli()
