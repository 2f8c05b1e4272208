"""Pydantic models of the declarative catalog spec document.

Every sub-document is optional. ``None`` means the area is not managed by the
run; an empty tuple means the area is reconciled to "nothing to create".
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

if TYPE_CHECKING:
    from pydantic.main import IncEx


class SpecModel(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True, frozen=True)

    def to_input(self, *, exclude: IncEx | None = None) -> dict[str, Any]:
        """Dump as a camelCase mutation input without unset values."""

        return self.model_dump(mode="json", by_alias=True, exclude_none=True, exclude=exclude)


class SpecLanguage(SpecModel):
    code: str
    name: str
    is_default: bool = Field(default=False, alias="isDefault")


class SpecPriceVariant(SpecModel):
    identifier: str
    name: str
    currency: str


class SpecVatType(SpecModel):
    name: str
    percent: float


class SpecStockLocation(SpecModel):
    identifier: str
    name: str
    minimum: int | None = None


class SpecMeteredVariable(SpecModel):
    identifier: str
    name: str | None = ""
    unit: str


class SpecPlanPeriod(SpecModel):
    name: str | None = ""
    initial: dict[str, Any] | None = None
    recurring: dict[str, Any] | None = None


class SpecSubscriptionPlan(SpecModel):
    identifier: str
    name: str | None = ""
    metered_variables: tuple[SpecMeteredVariable, ...] = Field(
        default=(), alias="meteredVariables"
    )
    periods: tuple[SpecPlanPeriod, ...] = ()

    @field_validator("metered_variables", "periods", mode="before")
    @classmethod
    def _none_to_empty(cls, value: object) -> object:
        return () if value is None else value


class SpecShapeComponent(SpecModel):
    id: str
    name: str
    type: str
    description: str | None = None
    config: dict[str, Any] | None = None


class SpecShape(SpecModel):
    identifier: str
    name: str
    type: Literal["product", "document", "folder"] = "product"
    components: tuple[SpecShapeComponent, ...] = ()


class SpecTopic(SpecModel):
    name: str
    path_identifier: str | None = Field(default=None, alias="pathIdentifier")
    children: tuple[SpecTopic, ...] = ()


class SpecItemReference(SpecModel):
    external_reference: str | None = Field(default=None, alias="externalReference")
    catalog_path: str | None = Field(default=None, alias="catalogPath")

    @property
    def is_empty(self) -> bool:
        return not (self.external_reference or self.catalog_path)


class SpecGridColumn(SpecModel):
    item: SpecItemReference | None = None
    layout: dict[str, Any] | None = None


class SpecGridRow(SpecModel):
    columns: tuple[SpecGridColumn, ...] = ()


class SpecGrid(SpecModel):
    name: str
    rows: tuple[SpecGridRow, ...] = ()


class SpecItem(SpecModel):
    name: str
    shape: str
    external_reference: str | None = Field(default=None, alias="externalReference")
    catalog_path: str | None = Field(default=None, alias="catalogPath")
    topics: tuple[str, ...] = ()
    components: dict[str, Any] | None = None
    children: tuple[SpecItem, ...] = ()

    @property
    def reference(self) -> SpecItemReference:
        return SpecItemReference(
            externalReference=self.external_reference, catalogPath=self.catalog_path
        )


class SpecCustomer(SpecModel):
    identifier: str
    first_name: str | None = Field(default=None, alias="firstName")
    last_name: str | None = Field(default=None, alias="lastName")
    email: str | None = None


class SpecOrder(SpecModel):
    reference: str | None = None
    customer: dict[str, Any] = Field(default_factory=dict)
    cart: tuple[dict[str, Any], ...] = ()
    total: dict[str, Any] | None = None


class Spec(SpecModel):
    languages: tuple[SpecLanguage, ...] | None = None
    price_variants: tuple[SpecPriceVariant, ...] | None = Field(
        default=None, alias="priceVariants"
    )
    vat_types: tuple[SpecVatType, ...] | None = Field(default=None, alias="vatTypes")
    stock_locations: tuple[SpecStockLocation, ...] | None = Field(
        default=None, alias="stockLocations"
    )
    subscription_plans: tuple[SpecSubscriptionPlan, ...] | None = Field(
        default=None, alias="subscriptionPlans"
    )
    shapes: tuple[SpecShape, ...] | None = None
    topic_maps: tuple[SpecTopic, ...] | None = Field(default=None, alias="topicMaps")
    grids: tuple[SpecGrid, ...] | None = None
    items: tuple[SpecItem, ...] | None = None
    customers: tuple[SpecCustomer, ...] | None = None
    orders: tuple[SpecOrder, ...] | None = None

    @classmethod
    def from_path(cls, path: Path | str) -> Spec:
        return cls.model_validate_json(Path(path).read_text(encoding="utf-8"))

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True, indent=2)
