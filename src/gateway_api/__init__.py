"""HTTP gateway for S3 uploads and realtime relay of SQS messages."""
