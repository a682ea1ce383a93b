"""Asset storage for wallet logo and cover images (Supabase or S3)."""

import uuid
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from libs.common.config import Settings, get_settings
from libs.common.logging import get_logger
from services.wallet_service.errors import InvalidRequest, UpstreamFailure

logger = get_logger(__name__)


@dataclass(frozen=True)
class AssetUpload:
    data: bytes
    filename: str
    content_type: str


class StorageService:
    """Uploads wallet images and returns their public URL."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.backend = self.settings.STORAGE_BACKEND
        self._client = None

    def _get_client(self):
        # Clients are built on first upload so missing credentials only fail
        # requests that actually store images.
        if self._client is None:
            if self.backend == "supabase":
                from supabase import create_client

                self._client = create_client(
                    self.settings.SUPABASE_URL, self.settings.SUPABASE_SERVICE_ROLE_KEY
                )
            elif self.backend == "s3":
                import boto3

                self._client = boto3.client(
                    "s3",
                    aws_access_key_id=self.settings.AWS_ACCESS_KEY_ID,
                    aws_secret_access_key=self.settings.AWS_SECRET_ACCESS_KEY,
                    region_name=self.settings.AWS_REGION,
                )
            else:
                raise ValueError(f"Unknown storage backend: {self.backend}")
        return self._client

    async def upload_asset(self, asset: AssetUpload) -> str:
        """Store an image and return its URL."""
        if not asset.content_type.startswith("image/"):
            raise InvalidRequest(f"{asset.filename or 'file'} must be an image")

        file_ext = asset.filename.rsplit(".", 1)[-1] if "." in asset.filename else "bin"
        path = f"wallets/{uuid.uuid4()}.{file_ext}"

        try:
            if self.backend == "supabase":
                url = await self._upload_supabase(path, asset)
            else:
                url = await self._upload_s3(path, asset)
        except InvalidRequest:
            raise
        except Exception as exc:
            logger.warning("Asset upload to %s failed: %s", self.backend, exc)
            raise UpstreamFailure(f"Could not store {asset.filename}") from exc

        logger.info("Stored wallet asset %s (%s)", path, asset.content_type)
        return url

    async def _upload_supabase(self, path: str, asset: AssetUpload) -> str:
        bucket = self._get_client().storage.from_(self.settings.SUPABASE_STORAGE_BUCKET)
        bucket.upload(
            path=path, file=asset.data, file_options={"content-type": asset.content_type}
        )
        return bucket.get_public_url(path)

    async def _upload_s3(self, path: str, asset: AssetUpload) -> str:
        bucket = self.settings.AWS_S3_BUCKET
        self._get_client().put_object(
            Bucket=bucket, Key=path, Body=asset.data, ContentType=asset.content_type
        )
        return f"https://{bucket}.s3.{self.settings.AWS_REGION}.amazonaws.com/{path}"


@lru_cache
def get_storage_service() -> StorageService:
    return StorageService()
