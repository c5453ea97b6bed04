from datetime import datetime

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class FileInfo(CamelModel):
    id: str
    filename: str
    size: int
    upload_date: datetime
    download_url: str
    view_url: str


class UploadedFile(CamelModel):
    id: str
    original_name: str
    size: int
    mimetype: str
    upload_date: datetime
    download_url: str


class UploadResponse(BaseModel):
    success: bool = True
    file: UploadedFile


class DeleteResponse(BaseModel):
    success: bool = True
    message: str


class ErrorResponse(BaseModel):
    error: str
