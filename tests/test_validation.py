import pytest
from pydantic import BaseModel, ValidationError

from tsj.validation import default_rest_validator


class Item(BaseModel):
    name: str
    count: int = 1


def test_validate_returns_model():
    item = default_rest_validator().validate(Item, {"name": "a", "count": "3"})
    assert item == Item(name="a", count=3)


def test_validate_rejects_missing_field():
    with pytest.raises(ValidationError):
        default_rest_validator().validate(Item, {})


def test_validate_accepts_model_instance():
    item = Item(name="b")
    assert default_rest_validator().validate(Item, item) == item