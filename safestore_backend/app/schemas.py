from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel

from .storage import StoredObject


# =========================
# Files
# =========================
class FileOut(BaseModel):
    name: str
    size: int
    uploadDate: datetime

    @classmethod
    def from_stored(cls, obj: StoredObject) -> "FileOut":
        return cls(name=obj.storage_name, size=obj.size_bytes, uploadDate=obj.modified_at)


class UploadResponse(BaseModel):
    success: bool = True
    message: str = "File uploaded successfully!"
    filename: str
    size: int


class DeleteResponse(BaseModel):
    success: bool = True
    message: str = "File deleted successfully"


# =========================
# Errors / health
# =========================
class ErrorResponse(BaseModel):
    success: bool = False
    error: str


class HealthResponse(BaseModel):
    status: str = "OK"
    message: str = "Server is running"
