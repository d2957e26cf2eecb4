"""HTTP read surface of the flat repository."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import List, NoReturn, Optional

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request
from fastapi.responses import StreamingResponse
from pydantic import BaseModel

from flatrepo.config import RepositorySettings, configure_logging
from flatrepo.errors import InvalidVersionFormat, RepositoryIOError, UnsupportedOperationError
from flatrepo.models import FileData
from flatrepo.repository import Repository

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/files", tags=["files"])


class FileDataResponse(BaseModel):
    """Artifact summary."""
    name: str
    size: Optional[int] = None
    author: Optional[str] = None
    modified_at: Optional[datetime] = None
    version: Optional[str] = None
    comment: Optional[str] = None
    deleted: bool = False

    @classmethod
    def from_file_data(cls, data: FileData) -> "FileDataResponse":
        return cls(
            name=data.name,
            size=data.size,
            author=data.author,
            modified_at=data.modified_at,
            version=data.version,
            comment=data.comment,
            deleted=data.deleted,
        )


def get_repository(request: Request) -> Repository:
    return request.app.state.repository


def _raise_http(e: Exception, name: str) -> NoReturn:
    if isinstance(e, InvalidVersionFormat):
        raise HTTPException(status_code=400, detail=str(e))
    if isinstance(e, UnsupportedOperationError):
        raise HTTPException(status_code=501, detail=str(e))
    logger.error(f"Repository failure for '{name}': {e}", exc_info=e)
    raise HTTPException(status_code=502, detail="Repository failure")


@router.get("", response_model=List[FileDataResponse])
def list_files(prefix: str = "", repository: Repository = Depends(get_repository)):
    try:
        files = repository.list(prefix)
    except RepositoryIOError as e:
        _raise_http(e, prefix)
    return [FileDataResponse.from_file_data(f) for f in files]


@router.get("/check/{path:path}", response_model=FileDataResponse)
def check_file(path: str, version: Optional[str] = None, repository: Repository = Depends(get_repository)):
    try:
        data = repository.check_history(path, version)
    except RepositoryIOError as e:
        _raise_http(e, path)
    if data is None:
        raise HTTPException(status_code=404, detail="Not found")
    return FileDataResponse.from_file_data(data)


@router.get("/history/{path:path}", response_model=List[FileDataResponse])
def list_history(path: str, repository: Repository = Depends(get_repository)):
    try:
        files = repository.list_history(path)
    except RepositoryIOError as e:
        _raise_http(e, path)
    return [FileDataResponse.from_file_data(f) for f in files]


@router.get("/content/{path:path}")
def read_file(path: str, version: Optional[str] = None, repository: Repository = Depends(get_repository)):
    try:
        item = repository.read_history(path, version)
    except RepositoryIOError as e:
        _raise_http(e, path)
    if item is None:
        raise HTTPException(status_code=404, detail="Not found")

    data = item.data
    filename = data.name.rsplit("/", 1)[-1] or "root"
    if item.content_type == "application/zip":
        filename += ".zip"
    headers = {
        "Content-Disposition": f'attachment; filename="{filename}"',
        "X-Version": data.version or "",
    }
    return StreamingResponse(item.stream, media_type=item.content_type, headers=headers)


@router.put("/{path:path}")
def save_file(path: str, repository: Repository = Depends(get_repository)):
    try:
        repository.save(FileData(name=path), None)
    except UnsupportedOperationError as e:
        _raise_http(e, path)


@router.delete("/{path:path}")
def delete_file(path: str, repository: Repository = Depends(get_repository)):
    try:
        repository.delete(FileData(name=path))
    except UnsupportedOperationError as e:
        _raise_http(e, path)


def create_app(repository: Repository, settings: Optional[RepositorySettings] = None) -> FastAPI:
    """
    Build the HTTP app around a repository.

    Logging is configured on startup and the repository is closed on shutdown.

    Args:
        repository: Repository served by the routes
        settings: Optional settings instance, uses cached settings if not provided
    """

    @asynccontextmanager
    async def lifespan_context(app: FastAPI):
        configure_logging(settings)
        logger.info("Repository API started", extra={"component": "api"})
        yield
        repository.close()
        logger.info("Repository API stopped")

    app = FastAPI(title="flatrepo", lifespan=lifespan_context)
    app.state.repository = repository
    app.include_router(router)
    return app
