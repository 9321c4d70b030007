from __future__ import annotations

import logging
from typing import BinaryIO, Iterator, List, Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, File, Query, Request, UploadFile
from fastapi.responses import Response, StreamingResponse

from .. import schemas
from ..exceptions import ValidationError
from ..storage import READ_CHUNK_SIZE, StorageDirectory, read_upload

logger = logging.getLogger("safestore.files")

router = APIRouter(
    tags=["files"],
    responses={
        400: {"model": schemas.ErrorResponse},
        404: {"model": schemas.ErrorResponse},
        500: {"model": schemas.ErrorResponse},
    },
)


def get_storage(request: Request) -> StorageDirectory:
    """FastAPI dependency returning the storage directory built at startup."""
    return request.app.state.storage


def _attachment(filename: str) -> dict:
    quoted = quote(filename)
    if quoted != filename:
        return {"Content-Disposition": f"attachment; filename*=utf-8''{quoted}"}
    return {"Content-Disposition": f'attachment; filename="{filename}"'}


def _iter_file(fh: BinaryIO) -> Iterator[bytes]:
    try:
        while True:
            chunk = fh.read(READ_CHUNK_SIZE)
            if not chunk:
                break
            yield chunk
    finally:
        fh.close()


@router.post("/upload", response_model=schemas.UploadResponse)
@router.post("/submitData", response_model=schemas.UploadResponse)
def upload_file(
    uploadFile: Optional[UploadFile] = File(None),
    file: Optional[UploadFile] = File(None),
    storage: StorageDirectory = Depends(get_storage),
):
    """
    Read the multipart upload (capped at the configured size), then
    encrypt it and store it under an obfuscated name.
    """
    upload = uploadFile or file
    if upload is None:
        logger.error("No files in request")
        raise ValidationError("No files were uploaded")

    logger.info("Upload request received (content_type=%s)", upload.content_type)
    upload.file.seek(0)
    data = read_upload(upload.file, storage.max_upload_bytes)
    stored = storage.ingest(upload.filename, data)

    return schemas.UploadResponse(filename=stored.storage_name, size=stored.size_bytes)


@router.get("/files", response_model=List[schemas.FileOut])
def list_files(storage: StorageDirectory = Depends(get_storage)):
    return [schemas.FileOut.from_stored(obj) for obj in storage.list_objects()]


@router.get("/download/{filename}")
def download_file(
    filename: str,
    decrypt: bool = Query(False, description="Return the decrypted content instead of the at-rest bytes"),
    storage: StorageDirectory = Depends(get_storage),
):
    headers = _attachment(filename)
    if decrypt:
        data = storage.read_plaintext(filename)
        return Response(content=data, media_type="application/octet-stream", headers=headers)

    fh = storage.open_object(filename)
    return StreamingResponse(_iter_file(fh), media_type="application/octet-stream", headers=headers)


@router.delete("/delete/{filename}", response_model=schemas.DeleteResponse)
def delete_file(filename: str, storage: StorageDirectory = Depends(get_storage)):
    storage.delete(filename)
    return schemas.DeleteResponse()
