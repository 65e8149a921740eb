"""
Storage Service Module

Handles object storage for meeting recordings, staged audio and transcript
artifacts, abstracting between the local filesystem and Google Cloud Storage.
"""

import asyncio
import logging
import os
import shutil
from pathlib import Path
from typing import Dict, Optional

import aiofiles

from ..core import config

logger = logging.getLogger(__name__)


class StorageService:
    """
    Storage backend for one bucket.

    Every operation reports success as a bool (or None for lookups) rather
    than raising, so callers decide which failures are fatal.
    """

    def __init__(
        self,
        storage_type: Optional[str] = None,
        bucket_name: Optional[str] = None,
        local_base_path: Optional[str] = None,
        credentials_path: Optional[str] = None,
    ):
        self.storage_type = (storage_type or config.STORAGE_TYPE).lower()
        self.bucket_name = bucket_name or config.GCP_BUCKET_NAME
        self.local_base_path = Path(local_base_path or config.LOCAL_STORAGE_PATH)
        self.credentials_path = credentials_path or config.GOOGLE_CREDENTIALS_PATH
        self._gcp_client = None
        self._gcp_bucket = None

    def get_gcp_bucket(self):
        """Get or initialize the GCP bucket client."""
        if self.storage_type != "gcp":
            return None

        if self._gcp_bucket:
            return self._gcp_bucket

        try:
            from google.cloud import storage
            from google.oauth2 import service_account

            if not self.bucket_name:
                logger.error("GCP_BUCKET_NAME environment variable not set")
                return None

            if os.path.exists(self.credentials_path):
                credentials = service_account.Credentials.from_service_account_file(
                    self.credentials_path
                )
                self._gcp_client = storage.Client(credentials=credentials)
            else:
                # Default credentials (e.g. running on Cloud Run)
                logger.warning(
                    f"Service account key not found at {self.credentials_path}, using default credentials"
                )
                self._gcp_client = storage.Client()

            self._gcp_bucket = self._gcp_client.bucket(self.bucket_name)
            logger.info(f"✅ Connected to GCS bucket: {self.bucket_name}")
            return self._gcp_bucket
        except Exception as e:
            logger.error(f"❌ Failed to initialize GCP storage: {e}")
            return None

    def get_uri(self, path: str) -> str:
        """Address of an object as understood by other Google Cloud services."""
        if self.storage_type == "gcp":
            return f"gs://{self.bucket_name}/{path}"
        return str((self.local_base_path / path).resolve())

    async def upload_file(self, local_path: str, destination_path: str) -> bool:
        """
        Upload a file to storage.

        Args:
            local_path: Path to the local file to upload
            destination_path: Logical path in storage (e.g. 'temp/temp-audio-1.wav')
        """
        if not os.path.exists(local_path):
            logger.error(f"Upload failed: Source file not found {local_path}")
            return False

        if self.storage_type == "gcp":
            return await self._upload_to_gcp(local_path, destination_path)
        return await self._save_locally(local_path, destination_path)

    async def upload_text(
        self,
        destination_path: str,
        text: str,
        content_type: str = "text/plain",
        metadata: Optional[Dict[str, str]] = None,
    ) -> bool:
        """Write a text object (e.g. a transcript artifact)."""
        if self.storage_type == "gcp":
            return await self._upload_text_to_gcp(
                destination_path, text, content_type, metadata
            )
        return await self._write_text_locally(destination_path, text)

    async def download_file(self, source_path: str, local_destination: str) -> bool:
        """Download a file from storage to local path."""
        if self.storage_type == "gcp":
            return await self._download_from_gcp(source_path, local_destination)
        return await self._copy_locally(source_path, local_destination)

    async def delete_file(self, path: str) -> bool:
        """Delete a file from storage."""
        if self.storage_type == "gcp":
            return await self._delete_from_gcp(path)
        return await self._delete_locally(path)

    async def check_file_exists(self, path: str) -> bool:
        """Check if file exists in storage."""
        if self.storage_type == "gcp":
            return await self._check_gcp_exists(path)
        return (self.local_base_path / path).exists()

    async def get_file_size(self, path: str) -> Optional[int]:
        """Size in bytes, or None when the object cannot be read."""
        if self.storage_type == "gcp":
            return await self._get_gcp_size(path)
        target = self.local_base_path / path
        return target.stat().st_size if target.exists() else None

    # --- GCS implementations ---

    async def _check_gcp_exists(self, blob_name: str) -> bool:
        try:
            bucket = self.get_gcp_bucket()
            if not bucket:
                return False

            blob = bucket.blob(blob_name)
            loop = asyncio.get_running_loop()
            return await loop.run_in_executor(None, blob.exists)
        except Exception as e:
            logger.error(f"GCS Exists check failed: {e}")
            return False

    async def _get_gcp_size(self, blob_name: str) -> Optional[int]:
        try:
            bucket = self.get_gcp_bucket()
            if not bucket:
                return None

            loop = asyncio.get_running_loop()
            blob = await loop.run_in_executor(None, bucket.get_blob, blob_name)
            return blob.size if blob else None
        except Exception as e:
            logger.error(f"GCS metadata lookup failed: {e}")
            return None

    async def _upload_to_gcp(self, local_path: str, blob_name: str) -> bool:
        try:
            bucket = self.get_gcp_bucket()
            if not bucket:
                return False

            blob = bucket.blob(blob_name)
            loop = asyncio.get_running_loop()
            await loop.run_in_executor(None, blob.upload_from_filename, local_path)

            logger.info(f"⬆️  Uploaded to GCS: gs://{self.bucket_name}/{blob_name}")
            return True
        except Exception as e:
            logger.error(f"GCS Upload failed: {e}")
            return False

    async def _upload_text_to_gcp(
        self,
        blob_name: str,
        text: str,
        content_type: str,
        metadata: Optional[Dict[str, str]],
    ) -> bool:
        try:
            bucket = self.get_gcp_bucket()
            if not bucket:
                return False

            blob = bucket.blob(blob_name)
            if metadata:
                blob.metadata = metadata

            loop = asyncio.get_running_loop()
            await loop.run_in_executor(
                None,
                lambda: blob.upload_from_string(text, content_type=content_type),
            )

            logger.info(f"⬆️  Uploaded to GCS: gs://{self.bucket_name}/{blob_name}")
            return True
        except Exception as e:
            logger.error(f"GCS Upload failed: {e}")
            return False

    async def _download_from_gcp(self, blob_name: str, local_path: str) -> bool:
        try:
            bucket = self.get_gcp_bucket()
            if not bucket:
                return False

            blob = bucket.blob(blob_name)
            os.makedirs(os.path.dirname(local_path), exist_ok=True)

            loop = asyncio.get_running_loop()
            await loop.run_in_executor(None, blob.download_to_filename, local_path)

            logger.info(f"⬇️  Downloaded from GCS: {blob_name} -> {local_path}")
            return True
        except Exception as e:
            logger.error(f"GCS Download failed: {e}")
            return False

    async def _delete_from_gcp(self, blob_name: str) -> bool:
        try:
            bucket = self.get_gcp_bucket()
            if not bucket:
                return False

            blob = bucket.blob(blob_name)
            loop = asyncio.get_running_loop()
            await loop.run_in_executor(None, blob.delete)

            logger.info(f"🗑️  Deleted from GCS: {blob_name}")
            return True
        except Exception as e:
            logger.warning(f"GCS Delete failed (might not exist): {e}")
            return False

    # --- Local fallbacks ---

    async def _save_locally(self, local_source: str, relative_dest: str) -> bool:
        try:
            dest_path = self.local_base_path / relative_dest
            dest_path.parent.mkdir(parents=True, exist_ok=True)

            if os.path.abspath(local_source) == os.path.abspath(dest_path):
                return True

            shutil.copy2(local_source, dest_path)
            return True
        except Exception as e:
            logger.error(f"Local save failed: {e}")
            return False

    async def _write_text_locally(self, relative_dest: str, text: str) -> bool:
        try:
            dest_path = self.local_base_path / relative_dest
            dest_path.parent.mkdir(parents=True, exist_ok=True)

            async with aiofiles.open(dest_path, "w", encoding="utf-8") as f:
                await f.write(text)
            return True
        except Exception as e:
            logger.error(f"Local save failed: {e}")
            return False

    async def _copy_locally(self, relative_source: str, local_dest: str) -> bool:
        try:
            source_path = self.local_base_path / relative_source

            if not source_path.exists():
                logger.error(f"Local copy failed: {source_path} does not exist")
                return False

            os.makedirs(os.path.dirname(local_dest), exist_ok=True)
            shutil.copy2(source_path, local_dest)
            return True
        except Exception as e:
            logger.error(f"Local copy failed: {e}")
            return False

    async def _delete_locally(self, relative_path: str) -> bool:
        try:
            target_path = self.local_base_path / relative_path

            if target_path.exists():
                os.remove(target_path)
                return True
            return False
        except Exception as e:
            logger.error(f"Local delete failed: {e}")
            return False


# Singleton instance
_storage_service: Optional[StorageService] = None


def get_storage_service() -> StorageService:
    """Get or create the storage service singleton."""
    global _storage_service

    if _storage_service is None:
        _storage_service = StorageService()

    return _storage_service
