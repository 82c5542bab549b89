import asyncio
from typing import List

from fastapi import (
    APIRouter,
    Depends,
    File,
    Path,
    UploadFile,
)
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import StreamingResponse

from gateway_api.config.settings import Settings
from gateway_api.dependencies import get_app_settings, get_s3_client
from gateway_api.errors import ValidationError
from gateway_api.s3.read_objects import fetch_s3_object
from gateway_api.s3.signed_urls import (
    clamp_expiry,
    expires_at,
    generate_signed_url,
    get_cloudfront_url,
)
from gateway_api.s3.write_objects import build_object_key, upload_s3_object
from gateway_api.schemas import (
    MultipleUploadResponse,
    SignedUrlData,
    SignedUrlRequest,
    SignedUrlResponse,
    UploadedFile,
    UploadResponse,
)
from gateway_api.utils.decorators import async_log_upload_time

router = APIRouter()

# Images, PDFs and Word documents
ALLOWED_MIME_TYPES = {
    "image/jpeg",
    "image/png",
    "image/gif",
    "image/webp",
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
}


@async_log_upload_time
async def store_upload(upload: UploadFile, settings: Settings, s3_client) -> UploadedFile:
    """Validate one uploaded file, store it and mint its access URLs."""
    if upload.content_type not in ALLOWED_MIME_TYPES:
        raise ValidationError("Invalid file type. Only images, PDFs, and documents are allowed.")

    file_bytes = await upload.read()
    if len(file_bytes) > settings.upload_max_bytes:
        raise ValidationError(
            f"File too large: {upload.filename} exceeds {settings.upload_max_bytes} bytes"
        )

    file_key = build_object_key(upload.filename)
    await run_in_threadpool(
        upload_s3_object,
        settings.s3_bucket_name,
        file_key,
        file_bytes,
        s3_client,
        upload.content_type,
    )
    signed_url = await run_in_threadpool(
        generate_signed_url,
        settings.s3_bucket_name,
        file_key,
        s3_client,
        settings.signed_url_expires_in,
    )
    return UploadedFile(
        file_key=file_key,
        file_name=upload.filename,
        file_size=len(file_bytes),
        mime_type=upload.content_type,
        signed_url=signed_url,
        cloud_front_url=get_cloudfront_url(settings.cloudfront_domain, file_key),
    )


@router.post("/upload", response_model=UploadResponse)
async def upload_file(
    file: UploadFile | None = File(None),
    settings: Settings = Depends(get_app_settings),
    s3_client=Depends(get_s3_client),
) -> UploadResponse:
    """
    Upload a single file to S3.

    Returns the stored key along with a signed URL valid for one hour and,
    when a CloudFront domain is configured, the CDN URL.
    """
    if file is None:
        raise ValidationError("No file provided")

    uploaded = await store_upload(file, settings, s3_client)
    uploaded.expires_in = settings.signed_url_expires_in
    return UploadResponse(data=uploaded)


@router.post("/upload/multiple", response_model=MultipleUploadResponse)
async def upload_multiple_files(
    files: List[UploadFile] | None = File(None),
    settings: Settings = Depends(get_app_settings),
    s3_client=Depends(get_s3_client),
) -> MultipleUploadResponse:
    """Upload several files to S3 in one request."""
    if not files:
        raise ValidationError("No files provided")
    if len(files) > settings.upload_max_files:
        raise ValidationError(f"Too many files: at most {settings.upload_max_files} per request")

    uploaded = await asyncio.gather(*(store_upload(f, settings, s3_client) for f in files))
    return MultipleUploadResponse(
        message=f"{len(uploaded)} file(s) uploaded successfully",
        data=list(uploaded),
        expires_in=settings.signed_url_expires_in,
    )


@router.post("/get-signed-url", response_model=SignedUrlResponse)
async def get_signed_url(
    body: SignedUrlRequest,
    settings: Settings = Depends(get_app_settings),
    s3_client=Depends(get_s3_client),
) -> SignedUrlResponse:
    """Get a signed URL for an existing S3 file. Expiry is capped at 7 days."""
    if not body.file_key:
        raise ValidationError("fileKey is required")

    expiry = clamp_expiry(body.expires_in, settings.signed_url_max_expires_in)
    signed_url = await run_in_threadpool(
        generate_signed_url,
        settings.s3_bucket_name,
        body.file_key,
        s3_client,
        expiry,
    )
    return SignedUrlResponse(
        data=SignedUrlData(
            file_key=body.file_key,
            signed_url=signed_url,
            cloud_front_url=get_cloudfront_url(settings.cloudfront_domain, body.file_key),
            expires_in=expiry,
            expires_at=expires_at(expiry),
        )
    )


@router.get("/files/{file_key:path}")
async def fetch_file(
    file_key: str = Path(..., description="The key/path of the file to retrieve"),
    settings: Settings = Depends(get_app_settings),
    s3_client=Depends(get_s3_client),
) -> StreamingResponse:
    """Stream a file's content directly from S3."""
    if not file_key:
        raise ValidationError("fileKey is required")

    file_obj = await run_in_threadpool(fetch_s3_object, settings.s3_bucket_name, file_key, s3_client)

    headers = {}
    if file_obj.get("ContentLength") is not None:
        headers["Content-Length"] = str(file_obj["ContentLength"])

    return StreamingResponse(
        file_obj["Body"].iter_chunks(),
        media_type=file_obj.get("ContentType", "application/octet-stream"),
        headers=headers,
    )
