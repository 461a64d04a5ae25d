from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import FileResponse

from core.files import EXT_TO_CONTENT_TYPE, DiskFileStore, FileStore, get_file_store

router = APIRouter()


@router.get("/{filename}", response_class=FileResponse)
async def serve_upload(filename: str, files: FileStore = Depends(get_file_store)):
    """Serve a stored item image by file name. No auth required so img src works."""
    path = files.resolve(filename) if isinstance(files, DiskFileStore) else None
    if path is None or not path.is_file():
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Image not found")
    ext = path.suffix.lower().lstrip(".")
    return FileResponse(path, media_type=EXT_TO_CONTENT_TYPE.get(ext, "application/octet-stream"))
