"""Helpers for turning multipart uploads into in-memory photo payloads."""

from __future__ import annotations

from dataclasses import dataclass

from fastapi import UploadFile


@dataclass(frozen=True)
class PhotoUpload:
    """One uploaded file, read fully into memory (photos are capped at a few MB)."""

    filename: str
    content_type: str
    content: bytes
    field_name: str | None = None

    @property
    def size(self) -> int:
        return len(self.content)


async def read_upload(file: UploadFile, field_name: str | None = None) -> PhotoUpload:
    content = await file.read()
    return PhotoUpload(
        filename=file.filename or "untitled",
        content_type=file.content_type or "application/octet-stream",
        content=content,
        field_name=field_name,
    )


async def read_uploads(files: list[UploadFile] | None) -> list[PhotoUpload]:
    """Read every non-empty upload; browsers send an empty part when no file is chosen."""
    uploads: list[PhotoUpload] = []
    for file in files or []:
        if not file.filename:
            continue
        uploads.append(await read_upload(file))
    return uploads
