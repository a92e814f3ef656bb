import datetime
import json

import pytest

from argonaut.errors import ImmutableFieldViolation, ValidationFailed
from argonaut.typing import Collection

from .support import (
    ImmutableProductDTO,
    ImmutableUserDTO,
    ProductFeatureDTO,
    ProductReviewDTO,
)


def _user(**kwargs: object) -> ImmutableUserDTO:
    return ImmutableUserDTO({"username": "jdoe", "email": "jdoe@mail.com", **kwargs})


def test_basic_fields() -> None:
    user = _user(first_name="John", last_name="Doe")

    assert user.username == "jdoe"
    assert user.email == "jdoe@mail.com"
    assert user.first_name == "John"
    assert user.last_name == "Doe"


def test_absent_fields() -> None:
    user = ImmutableUserDTO({"username": "jdoe"})
    assert user.email == ""
    assert user.first_name is None
    assert user.registered_at is None


def test_casts_datetime_fields() -> None:
    user = _user(registered_at="2023-01-15 10:30:00")
    assert user.registered_at == datetime.datetime(2023, 1, 15, 10, 30)


def test_handles_null_values() -> None:
    user = _user(first_name=None, last_name=None, registered_at=None)
    assert user.first_name is None
    assert user.last_name is None
    assert user.registered_at is None


def test_fields_cannot_be_modified() -> None:
    user = _user()

    with pytest.raises(ImmutableFieldViolation, match="Cannot modify readonly property"):
        user.username = "different"
    assert user.username == "jdoe"


def test_fields_cannot_be_deleted() -> None:
    user = _user()
    with pytest.raises(AttributeError):
        del user.username


def test_new_attributes_cannot_be_added() -> None:
    user = _user()
    with pytest.raises(ImmutableFieldViolation):
        user.nickname = "jd"


def test_fields_are_written_once() -> None:
    user = _user()
    with pytest.raises(ImmutableFieldViolation):
        user._initialize_readonly_field("username", "other")


def test_serializes_to_dict() -> None:
    user = _user(first_name="John", last_name="Doe")

    data = user.to_dict()

    assert data == {
        "first_name": "John",
        "last_name": "Doe",
        "username": "jdoe",
        "email": "jdoe@mail.com",
        "registered_at": None,
    }


def test_serializes_to_json() -> None:
    user = _user(registered_at="2023-01-15 10:30:00")
    decoded = json.loads(user.to_json())
    assert decoded["username"] == "jdoe"
    assert decoded["registered_at"] == "2023-01-15T10:30:00"


def test_depth_zero_returns_empty_dict() -> None:
    assert _user().to_dict(depth=0) == {}


def test_validates() -> None:
    assert _user().is_valid()

    invalid = _user(email="invalid-email")
    assert invalid.is_valid() is False
    assert "email" in invalid.validate(throw=False)
    with pytest.raises(ValidationFailed):
        invalid.validate()


def test_collection_of_immutable_dtos() -> None:
    users = ImmutableUserDTO.collection(
        [
            {"username": "user1", "email": "user1@mail.com"},
            {"username": "user2", "email": "user2@mail.com"},
        ]
    )

    assert isinstance(users, Collection)
    assert len(users) == 2
    assert isinstance(users.first(), ImmutableUserDTO)


def test_casts_nested_dtos() -> None:
    product = ImmutableProductDTO(
        {
            "title": "Standing Desk",
            "features": [
                {"name": "Height Adjustable", "description": 'Adjusts from 28" to 48"'},
                {"name": "Memory Presets", "description": "4 programmable heights"},
            ],
            "reviews": [
                {"rating": 5, "comment": "Excellent!"},
                {"rating": 4, "comment": "Very good"},
            ],
            "user": {"username": "seller", "email": "seller@mail.com"},
        }
    )

    assert type(product.features) is list
    assert isinstance(product.features[0], ProductFeatureDTO)
    assert product.features[0].name == "Height Adjustable"
    assert isinstance(product.reviews, Collection)
    assert isinstance(product.reviews.first(), ProductReviewDTO)
    assert product.reviews.first().rating == 5
    assert isinstance(product.user, ImmutableUserDTO)
    assert product.user.username == "seller"


def test_recursive_serialization() -> None:
    product = ImmutableProductDTO(
        {
            "title": "Test Product",
            "features": [{"name": "Feature 1"}],
            "reviews": [{"rating": 5, "comment": "Great!"}],
            "user": {"username": "test", "email": "test@mail.com"},
        }
    )

    data = product.to_dict()

    assert data["features"][0]["name"] == "Feature 1"
    assert data["reviews"][0]["rating"] == 5
    assert data["user"]["username"] == "test"
