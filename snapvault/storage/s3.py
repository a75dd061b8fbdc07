import boto3
from typing import Optional, Dict
from botocore.exceptions import ClientError
from snapvault.settings import settings
import logging

log = logging.getLogger(__name__)

UPLOAD_PREFIX = "uploads/"

def object_key(image_id: str) -> str:
    """Object key for an image id."""
    return f"{UPLOAD_PREFIX}{image_id}"

# -------------------------
# S3 Service
# -------------------------
class S3Service:
    def __init__(self):
        session = boto3.session.Session(region_name=settings.aws_region)
        kwargs = {
            "aws_access_key_id": settings.aws_access_key_id,
            "aws_secret_access_key": settings.aws_secret_access_key,
        }
        if settings.aws_endpoint_url:
            kwargs["endpoint_url"] = settings.aws_endpoint_url

        self.client = session.client("s3", **kwargs)
        log.info("Initialized S3 client")

        # Ensure bucket exists at initialization
        self.ensure_bucket()

    def ensure_bucket(self):
        try:
            self.client.head_bucket(Bucket=settings.s3_bucket)
            log.debug("Bucket %s already exists", settings.s3_bucket)
        except ClientError as e:
            error_code = int(e.response["Error"]["Code"])
            if error_code == 404:
                self.client.create_bucket(Bucket=settings.s3_bucket)
                log.info("Created bucket %s", settings.s3_bucket)
            else:
                log.error("Failed to check/create bucket: %s", e)
                raise

    def generate_presigned_upload_url(
        self,
        key: str,
        content_type: str,
        metadata: Optional[Dict[str, str]] = None,
        expires_in: Optional[int] = None,
    ) -> str:
        """Pre-signed PUT url; the uploader must send the same Content-Type."""
        expires = expires_in or settings.presign_expire_seconds
        params = {"Bucket": settings.s3_bucket, "Key": key, "ContentType": content_type}
        if metadata:
            params["Metadata"] = metadata
        url = self.client.generate_presigned_url(
            "put_object",
            Params=params,
            ExpiresIn=expires,
        )
        log.debug("Generated upload url for s3://%s/%s", settings.s3_bucket, key)
        return url

    def public_url(self, key: str) -> str:
        if settings.public_base_url:
            return f"{settings.public_base_url.rstrip('/')}/{key}"
        return f"https://{settings.s3_bucket}.s3.{settings.aws_region}.amazonaws.com/{key}"

    def delete(self, key: str):
        self.client.delete_object(Bucket=settings.s3_bucket, Key=key)
        log.debug("Deleted s3://%s/%s", settings.s3_bucket, key)

    def close(self):
        log.info("Closed S3 client")
