"""DTOs and assemblers shared by the tests."""

from __future__ import annotations

import datetime
from typing import Any

from argonaut import ArgonautAssembler, ArgonautDTO, ArgonautImmutableDTO, setter
from argonaut.typing import Collection


class UserDTO(ArgonautDTO):
    first_name: str | None = None
    last_name: str | None = None
    username: str
    full_name: str | None = None
    email: str
    registered_at: datetime.datetime | None = None

    casts = {
        "first_name": "string",
        "last_name": "string",
        "username": "string",
        "email": "string",
        "full_name": "string",
        "registered_at": datetime.datetime,
    }

    prioritized_attributes = ["first_name", "last_name"]

    def rules(self) -> dict[str, list[str]]:
        return {
            "first_name": ["nullable", "string", "max:32"],
            "last_name": ["nullable", "string", "max:32"],
            "username": ["required", "string", "max:64"],
            "email": ["required", "string", "email", "max:255"],
        }

    @setter("first_name")
    def set_first_name(self, value: str | None) -> None:
        self.first_name = value
        self._update_full_name()

    @setter("last_name")
    def set_last_name(self, value: str | None) -> None:
        self.last_name = value
        self._update_full_name()

    def _update_full_name(self) -> None:
        self.full_name = (
            " ".join(filter(None, [self.first_name, self.last_name])) or None
        )


class FullNameDTO(ArgonautDTO):
    full_name: str | None = None


class InvalidDTO(ArgonautDTO):
    something: str | None = None


class ProductFeatureDTO(ArgonautDTO):
    name: str
    description: str | None = None
    sub_features: Collection[ProductFeatureDTO] | None = None

    casts = {"sub_features": Collection["ProductFeatureDTO"]}


class ProductReviewDTO(ArgonautDTO):
    display_name: str | None = None
    rating: int
    comment: str | None = None
    created_at: datetime.datetime | None = None

    casts = {
        "display_name": "string",
        "rating": "int",
        "comment": "string",
        "created_at": datetime.datetime,
    }


class UserDTOAssembler(ArgonautAssembler):
    @staticmethod
    def to_user_dto(input: Any) -> UserDTO:
        return UserDTO(
            username=getattr(input, "display_name", None)
            or getattr(input, "username", None),
            first_name=getattr(input, "first_name", None),
            last_name=getattr(input, "last_name", None),
            email=getattr(input, "email", None),
        )

    @staticmethod
    def to_full_name_dto(input: Any) -> FullNameDTO:
        first_name = getattr(input, "first_name", None)
        last_name = getattr(input, "last_name", None)
        if first_name is None and last_name is None:
            full_name = getattr(input, "username", None)
        else:
            full_name = f"{first_name} {last_name}"
        return FullNameDTO(full_name=full_name)


class ProductDTO(ArgonautDTO):
    title: str
    features: list[ProductFeatureDTO]
    reviews: Collection[ProductReviewDTO]
    user: UserDTO | None = None

    casts = {
        "features": [ProductFeatureDTO],
        "reviews": Collection[ProductReviewDTO],
        "user": UserDTO,
    }

    nested_assemblers = {"user": UserDTOAssembler}

    def rules(self) -> dict[str, list[str]]:
        return {
            "title": ["required", "string"],
            "reviews": ["sometimes", "required", "collection", "min:1"],
        }


class ImmutableUserDTO(ArgonautImmutableDTO):
    first_name: str | None
    last_name: str | None
    username: str
    email: str
    registered_at: datetime.datetime | None

    casts = {"registered_at": datetime.datetime}

    def rules(self) -> dict[str, list[str]]:
        return {
            "username": ["required", "string", "max:64"],
            "email": ["required", "email", "max:255"],
        }


class ImmutableProductDTO(ArgonautImmutableDTO):
    title: str
    features: list[ProductFeatureDTO]
    reviews: Collection[ProductReviewDTO]
    user: ImmutableUserDTO | None

    casts = {
        "features": [ProductFeatureDTO],
        "reviews": Collection[ProductReviewDTO],
        "user": ImmutableUserDTO,
    }

    def rules(self) -> dict[str, list[str]]:
        return {"title": ["required", "string"]}


class InventoryModel:
    """A plain, non-DTO target."""

    foo: Any = None


class ExampleService:
    def foo(self) -> str:
        return "Foo Bar"


class ProductDTOAssembler(ArgonautAssembler):
    @staticmethod
    def to_product_dto(input: Any) -> ProductDTO:
        return ProductDTO(
            title=input.product_name,
            user=getattr(input, "user", None),
            features=getattr(input, "features", None) or [],
            reviews=getattr(input, "reviews", None) or [],
        )

    @staticmethod
    def to_product_feature_dto(input: Any) -> ProductFeatureDTO:
        return ProductFeatureDTO(
            name=getattr(input, "name", None) or "Unnamed Feature",
            description=getattr(input, "description", None),
        )

    @staticmethod
    def to_product_review_dto(input: Any) -> ProductReviewDTO:
        return ProductReviewDTO(
            rating=int(getattr(input, "rating", None) or 0),
            comment=getattr(input, "comment", None) or "",
        )

    @staticmethod
    def to_inventory_model(input: Any) -> InventoryModel:
        model = InventoryModel()
        model.foo = input.bar
        return model


class ProductDTOAssemblerInstance(ArgonautAssembler):
    def __init__(self, example_service: ExampleService):
        self.example_service = example_service

    def to_product_dto(self, input: Any) -> ProductDTO:
        product = ProductDTO(
            title=input.product_name,
            user=getattr(input, "user", None),
            features=getattr(input, "features", None) or [],
            reviews=getattr(input, "reviews", None) or [],
        )
        product.title = self.example_service.foo()
        return product

    @staticmethod
    def to_product_feature_dto(input: Any) -> ProductFeatureDTO:
        return ProductFeatureDTO(
            name=input.name,
            description=getattr(input, "description", None),
            sub_features=getattr(input, "sub_features", None),
        )

    def to_product_review_dto(self, input: Any) -> ProductReviewDTO:
        return ProductReviewDTO(
            rating=int(getattr(input, "rating", None) or 0),
            comment=self.example_service.foo(),
        )

    def to_inventory_model(self, input: Any) -> InventoryModel:
        model = InventoryModel()
        input.bar = self.example_service.foo()
        model.foo = input.bar
        return model


class FromPatternAssembler(ArgonautAssembler):
    """Resolves targets through `from_<name>` methods."""

    @staticmethod
    def from_user_dto(input: Any) -> UserDTO:
        return UserDTO(
            username=getattr(input, "name", None) or "default-user",
            email=getattr(input, "email", None) or "default@mail.com",
            first_name=getattr(input, "first_name", None),
            last_name=getattr(input, "last_name", None),
        )
