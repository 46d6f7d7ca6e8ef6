# Руководство к файлу (FAST_API/schemas.py)
# Назначение:
# - Централизованные Pydantic-схемы запросов/ответов FastAPI для imgbed.
# - Имена полей совпадают с тем, что шлёт фронтенд админки (categoryId, fileId).

from __future__ import annotations

from typing import Any, Dict, List, Optional, Union
from pydantic import BaseModel, Field


# --------------------------- Auth ---------------------------

class LoginRequest(BaseModel):
    username: str = ""
    password: str = ""


# --------------------------- Admin ---------------------------

class SearchRequest(BaseModel):
    query: str = ""


class CreateCategoryRequest(BaseModel):
    name: str = ""


class DeleteCategoryRequest(BaseModel):
    id: Optional[Union[int, str]] = None


class UpdateSuffixRequest(BaseModel):
    url: str
    suffix: str


class UpdateRemarkRequest(BaseModel):
    urls: List[str] = Field(default_factory=list)
    remark: Optional[str] = None


class ChangeCategoryRequest(BaseModel):
    urls: List[str] = Field(default_factory=list)
    category_id: Optional[Union[int, str]] = Field(default=None, alias="categoryId")

    model_config = {"populate_by_name": True}


class DeleteRequest(BaseModel):
    id: Optional[Union[int, str]] = None
    file_id: Optional[str] = Field(default=None, alias="fileId")

    model_config = {"populate_by_name": True}


class DeleteMultipleRequest(BaseModel):
    urls: List[str] = Field(default_factory=list)


class BulkResponse(BaseModel):
    status: int = 1
    message: str
    results: Dict[str, Any]


# --------------------------- System ---------------------------

class HealthResponse(BaseModel):
    status: str
    timestamp: str
    version: str


class ConfigResponse(BaseModel):
    max_size_mb: int = Field(..., alias="maxSizeMB")

    model_config = {"populate_by_name": True}
