"""Helpers for creating storage clients."""

from __future__ import annotations

from urllib.parse import urlparse

import boto3
from botocore.client import BaseClient

from complaint_desk.core.config import settings


def _normalize_endpoint(endpoint_url: str | None) -> str | None:
    if endpoint_url:
        return endpoint_url.rstrip("/")
    return None


def _is_gcs_compat_endpoint(endpoint_url: str | None) -> bool:
    if not endpoint_url:
        return False
    hostname = (urlparse(endpoint_url).hostname or "").lower()
    return hostname == "storage.googleapis.com" or hostname.endswith(".storage.googleapis.com")


def _resolve_region(region: str | None, endpoint_url: str | None) -> str | None:
    selected = region or settings.S3_REGION or None
    if _is_gcs_compat_endpoint(endpoint_url) and (selected is None or selected == "us-east-1"):
        # GCS XML API expects region "auto" for SigV4 signing.
        return "auto"
    return selected


def get_s3_client(
    *,
    region: str | None = None,
    endpoint_url: str | None = None,
) -> BaseClient:
    """Return a configured S3 client (supports S3-compatible endpoints)."""
    normalized_endpoint = _normalize_endpoint(endpoint_url or settings.S3_ENDPOINT_URL)
    return boto3.client(
        "s3",
        region_name=_resolve_region(region, normalized_endpoint),
        aws_access_key_id=settings.AWS_ACCESS_KEY_ID or None,
        aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY or None,
        endpoint_url=normalized_endpoint,
    )


def public_object_url(bucket: str, storage_key: str) -> str:
    """Build the URL clients use to fetch an uploaded object."""
    if settings.S3_PUBLIC_BASE_URL:
        return f"{settings.S3_PUBLIC_BASE_URL.rstrip('/')}/{storage_key}"
    endpoint = _normalize_endpoint(settings.S3_ENDPOINT_URL)
    if endpoint:
        return f"{endpoint}/{bucket}/{storage_key}"
    return f"https://{bucket}.s3.{settings.S3_REGION}.amazonaws.com/{storage_key}"
