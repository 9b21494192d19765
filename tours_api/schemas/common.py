"""
Response envelopes shared by every endpoint.

Successful responses look like:

    {"status": "success", "data": ...}                   — single resource
    {"status": "success", "results": 3, "data": [...]}   — list
    {"status": "success", "message": "..."}              — outcome only

Error responses are produced by the exception handlers in
tours_api.exceptions, not by these schemas.
"""

from typing import Generic, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class DataEnvelope(BaseModel, Generic[T]):
    status: str = "success"
    data: T


class ListEnvelope(BaseModel, Generic[T]):
    status: str = "success"
    results: int
    data: list[T]


class MessageResponse(BaseModel):
    status: str = "success"
    message: str
