"""Schemas for the hello endpoint."""

from pydantic import BaseModel


class HelloParams(BaseModel):
    message: str = ""


class HelloResponse(BaseModel):
    message: str
