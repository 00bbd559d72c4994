"""
Tests for error flattening.
"""

from pydantic import BaseModel, ValidationError
from sqlalchemy.exc import IntegrityError

from microbial.errors import NotFound, UnprocessableEntity, flatten_errors, unprocessable_from


class _Sample(BaseModel):
    name: str
    count: int


def test_flatten_validation_error():
    try:
        _Sample(count="many")
    except ValidationError as e:
        errors = flatten_errors(e)

    assert len(errors) == 2
    assert errors[0].startswith("name: ")
    assert errors[1].startswith("count: ")


def test_flatten_integrity_error():
    exc = IntegrityError("INSERT ...", {}, Exception("UNIQUE constraint failed: contacts.email"))

    assert flatten_errors(exc) == ["UNIQUE constraint failed: contacts.email"]


def test_unprocessable_from_integrity_error():
    exc = IntegrityError("INSERT ...", {}, Exception("duplicate key"))

    error = unprocessable_from(exc)

    assert isinstance(error, UnprocessableEntity)
    assert error.to_dict() == {"status": 422, "message": "duplicate key", "errors": ["duplicate key"]}


def test_default_messages():
    assert NotFound().to_dict() == {"status": 404, "message": "Not Found", "errors": []}
