import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import Depends, FastAPI, File, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from fileshare.config import Settings, get_settings
from fileshare.errors import FileStoreError, NoFileProvided
from fileshare.logging_config import setup_logging
from fileshare.models import DeleteResponse, ErrorResponse, FileInfo, UploadResponse
from fileshare.storage import FileStore

logger = logging.getLogger(__name__)

ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
}


def get_store(request: Request) -> FileStore:
    return request.app.state.store


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_logging(settings.log_level)
        app.state.store = FileStore.open(settings.storage_dir)
        logger.info("%s listening on http://%s:%d", settings.app_name, settings.host, settings.port)
        logger.info("storage directory: %s", app.state.store.root.resolve())
        yield

    app = FastAPI(title=settings.app_name, lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    def error_response(status_code: int, message: str) -> JSONResponse:
        return JSONResponse(status_code=status_code, content={"error": message})

    @app.middleware("http")
    async def limit_upload_size(request: Request, call_next):
        content_length = request.headers.get("content-length")
        ceiling = settings.max_upload_size_bytes + settings.multipart_overhead_bytes
        if content_length and content_length.isdigit() and int(content_length) > ceiling:
            logger.warning("rejected %s %s: body of %s bytes", request.method, request.url.path, content_length)
            return error_response(413, "file exceeds max upload size")
        return await call_next(request)

    @app.exception_handler(FileStoreError)
    async def file_store_exception_handler(request: Request, exc: FileStoreError):
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        else:
            logger.warning("%s %s rejected (%d): %s", request.method, request.url.path, exc.status_code, exc.message)
        return error_response(exc.status_code, exc.message)

    @app.exception_handler(RequestValidationError)
    async def request_validation_exception_handler(request: Request, exc: RequestValidationError):
        logger.warning("%s %s rejected: %s", request.method, request.url.path, exc.errors())
        return error_response(400, "invalid request parameters")

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(_: Request, exc: StarletteHTTPException):
        message = str(exc.detail) if exc.detail else "request failed"
        return error_response(exc.status_code, message)

    @app.get("/health")
    def health() -> dict:
        return {"status": "ok", "environment": settings.app_env}

    @app.post(
        "/api/upload",
        response_model=UploadResponse,
        responses={400: {"model": ErrorResponse}, 413: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    )
    def upload_file(file: UploadFile | None = File(None), store: FileStore = Depends(get_store)):
        if file is None:
            raise NoFileProvided()
        stored = store.put(
            source=file.file,
            original_name=file.filename,
            mimetype=file.content_type,
            max_size_bytes=settings.max_upload_size_bytes,
        )
        return UploadResponse(file=stored)

    @app.get("/api/files", response_model=list[FileInfo], responses={500: {"model": ErrorResponse}})
    def list_files(store: FileStore = Depends(get_store)):
        return store.list()

    @app.get("/api/download/{filename}", responses=ERROR_RESPONSES)
    def download_file(filename: str, store: FileStore = Depends(get_store)):
        path = store.get(filename)
        return FileResponse(path=path, filename=path.name)

    @app.get("/api/view/{filename}", responses=ERROR_RESPONSES)
    def view_file(filename: str, store: FileStore = Depends(get_store)):
        return FileResponse(path=store.get(filename))

    @app.delete("/api/files/{filename}", response_model=DeleteResponse, responses=ERROR_RESPONSES)
    def delete_file(filename: str, store: FileStore = Depends(get_store)):
        store.delete(filename)
        return DeleteResponse(message="file deleted")

    @app.get("/api/files/{filename}/info", response_model=FileInfo, responses=ERROR_RESPONSES)
    def file_info(filename: str, store: FileStore = Depends(get_store)):
        return store.stat(filename)

    if settings.public_path.is_dir():
        app.mount("/", StaticFiles(directory=settings.public_path, html=True), name="public")
    else:
        logger.warning("public directory %s not found, frontend disabled", settings.public_path)

    return app


def run() -> None:
    settings = get_settings()
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port, log_level=settings.log_level.lower())


app = create_app()
