####################################
# --- Request/response schemas --- #
####################################

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)

DEFAULT_TOPIC = "general"
DEFAULT_SIGNED_URL_EXPIRES_IN = 3600


class BroadcastEnvelope(BaseModel):
    """
    Application payload relayed from the queue to every connected client.

    Field types are not enforced: whatever JSON object the producer sent is
    relayed as-is, with `topic` filled in when it is absent.
    """
    text: Any = Field(None, description="The message text.")
    topic: Any = Field(DEFAULT_TOPIC, description="Topic the message was sent under.")
    timestamp: Any = Field(None, description="ISO8601 time the message was sent.")
    sender_id: Any = Field(
        None,
        alias="senderId",
        description="Session id of the realtime client that sent the message, if any.",
    )

    model_config = ConfigDict(
        extra="allow",
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "text": "hi",
                "topic": "t1",
                "timestamp": "2024-01-01T00:00:00.000Z",
                "senderId": "3f2b8c0e9a7d4b1e8c6f5a4d3b2c1e0f",
            }
        },
    )

    @field_validator("topic", mode="before")
    @classmethod
    def default_missing_topic(cls, v: Any) -> Any:
        return DEFAULT_TOPIC if v is None or v == "" else v

    def to_event(self) -> Dict[str, Any]:
        """Serialize for the `message` realtime event."""
        return self.model_dump(by_alias=True, exclude_none=True)


class SendMessageRequest(BaseModel):
    """Request body for `POST /api/messages` and the `send-message` realtime event."""
    text: str = Field(min_length=1, description="The message text.")
    topic: Optional[str] = Field(None, description="Topic to send under; defaults to `general`.")

    model_config = ConfigDict(
        json_schema_extra={"example": {"text": "hello", "topic": "t1"}}
    )


class SendMessageResponse(BaseModel):
    """Response model for `POST /api/messages`."""
    success: bool = True
    message: str = "Message queued"
    message_id: Optional[str] = Field(None, alias="messageId")

    model_config = ConfigDict(populate_by_name=True)


class RealtimeFrame(BaseModel):
    """JSON text frame exchanged over the realtime socket."""
    event: str
    data: Dict[str, Any] = {}


class UploadedFile(BaseModel):
    """Metadata of a file stored in the bucket."""
    file_key: str = Field(alias="fileKey", json_schema_extra={"example": "uploads/1700000000000-report.pdf"})
    file_name: str = Field(alias="fileName")
    file_size: int = Field(alias="fileSize")
    mime_type: str = Field(alias="mimeType")
    signed_url: str = Field(alias="signedUrl")
    cloud_front_url: Optional[str] = Field(None, alias="cloudFrontUrl")
    expires_in: Optional[int] = Field(None, alias="expiresIn")

    model_config = ConfigDict(populate_by_name=True)


class UploadResponse(BaseModel):
    """Response model for `POST /api/upload`."""
    success: bool = True
    message: str = "File uploaded successfully"
    data: UploadedFile


class MultipleUploadResponse(BaseModel):
    """Response model for `POST /api/upload/multiple`."""
    success: bool = True
    message: str
    data: List[UploadedFile]
    expires_in: int = Field(alias="expiresIn")

    model_config = ConfigDict(populate_by_name=True)


class SignedUrlRequest(BaseModel):
    """Request body for `POST /api/get-signed-url`."""
    file_key: Optional[str] = Field(None, alias="fileKey")
    expires_in: int = Field(DEFAULT_SIGNED_URL_EXPIRES_IN, alias="expiresIn", ge=1)

    model_config = ConfigDict(populate_by_name=True)


class SignedUrlData(BaseModel):
    file_key: str = Field(alias="fileKey")
    signed_url: str = Field(alias="signedUrl")
    cloud_front_url: Optional[str] = Field(None, alias="cloudFrontUrl")
    expires_in: int = Field(alias="expiresIn")
    expires_at: datetime = Field(alias="expiresAt")

    model_config = ConfigDict(populate_by_name=True)


class SignedUrlResponse(BaseModel):
    """Response model for `POST /api/get-signed-url`."""
    success: bool = True
    data: SignedUrlData
