"""
Request body validation.

Each route declares its body as a pydantic model carrying the field
constraints; ``validate(Model)`` parses the JSON body against it as a
FastAPI dependency, so a bad request fails with a 400 listing every
violation before auth or any store access happens.
"""
import json
from typing import Callable, List, Type

from fastapi import Request
from pydantic import BaseModel
from pydantic import ValidationError as SchemaValidationError

from errors import ValidationError


def field_errors(errors) -> List[dict]:
    """Map pydantic error entries to ``{field, message}`` pairs."""
    out = []
    for e in errors:
        loc = ".".join(str(part) for part in e.get("loc", ()))
        out.append({"field": loc or None, "message": e.get("msg")})
    return out


def validate(model: Type[BaseModel]) -> Callable:
    async def dependency(request: Request) -> BaseModel:
        try:
            body = await request.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            raise ValidationError(
                "Validation failed",
                errors=[{"field": None, "message": "Request body must be valid JSON"}],
            )
        try:
            return model.model_validate(body)
        except SchemaValidationError as exc:
            raise ValidationError("Validation failed", errors=field_errors(exc.errors()))

    return dependency
