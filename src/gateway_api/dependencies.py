"""FastAPI dependencies that hand out the clients built in `create_app`."""
from fastapi import Request

from gateway_api.config.settings import Settings
from gateway_api.services.messages import MessageProducer


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_message_producer(request: Request) -> MessageProducer:
    return request.app.state.producer


def get_s3_client(request: Request):
    return request.app.state.s3_client
