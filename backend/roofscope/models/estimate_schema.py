"""
Estimator data contracts.

Catalog items, line items and the Estimate serialise with camelCase aliases
(``baseQuantity``, ``sellPrice`` ...) because that is the shape persisted by
the quote store and read back field-for-field. Measurements and vendor quote
records keep their snake_case storage keys.
"""
import math
import re
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from roofscope.config import CATEGORIES, FINANCIAL_DEFAULTS
from roofscope.errors import ConfigurationError

Category = Literal["materials", "labor", "equipment", "accessories", "schafer"]
ItemKind = Literal["price_list", "vendor", "custom", "imported"]
VendorName = Literal["schafer", "tra", "rocky-mountain"]
VendorItemCategory = Literal["materials", "equipment", "accessories"]
VendorCategory = Literal["panels", "flashing", "fasteners", "snow-retention", "delivery"]

_NUMBER_RE = re.compile(r"-?(\d+(\.\d*)?|\.\d+)")


def to_number(value: Any) -> float:
    """
    Lenient numeric coercion used for externally extracted values.

    Numbers pass through; strings are stripped of currency symbols, commas
    and units ("$1,080.00" → 1080.0). Anything else, or an unparseable
    string, becomes 0.
    """
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        number = float(value)
        return number if math.isfinite(number) else 0.0
    if isinstance(value, str):
        cleaned = re.sub(r"[^0-9.\-]+", "", value)
        match = _NUMBER_RE.match(cleaned)
        return float(match.group(0)) if match else 0.0
    return 0.0


class _Record(BaseModel):
    """Immutable snake_case record."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)


class _CamelRecord(BaseModel):
    """Immutable record persisted with camelCase keys."""
    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
    )


# ---------------------------------------------------------------------------
# Measurements
# ---------------------------------------------------------------------------

class Measurements(_Record):
    """Roof-scope facts produced by measurement extraction. 1 square = 100 sq ft."""
    total_squares: float = 0.0
    predominant_pitch: str = ""
    ridge_length: float = 0.0
    hip_length: float = 0.0
    valley_length: float = 0.0
    eave_length: float = 0.0
    rake_length: float = 0.0
    penetrations: float = 0.0
    skylights: float = 0.0
    chimneys: float = 0.0
    complexity: str = ""
    steep_squares: Optional[float] = None
    standard_squares: Optional[float] = None
    flat_squares: Optional[float] = None
    file_name: Optional[str] = Field(None, alias="fileName")

    @field_validator(
        "total_squares", "ridge_length", "hip_length", "valley_length",
        "eave_length", "rake_length", "penetrations", "skylights", "chimneys",
        mode="before",
    )
    @classmethod
    def _coerce_measure(cls, value: Any) -> float:
        # Missing or malformed extraction output degrades to 0
        return to_number(value)

    @field_validator("steep_squares", "standard_squares", "flat_squares", mode="before")
    @classmethod
    def _coerce_optional_measure(cls, value: Any) -> Optional[float]:
        if value is None or value == "":
            return None
        return to_number(value)

    @field_validator("predominant_pitch", "complexity", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> str:
        return "" if value is None else str(value)

    @property
    def perimeter_length(self) -> float:
        """Eave + rake, the run covered by starter courses."""
        return self.eave_length + self.rake_length

    @property
    def ridge_and_hip_length(self) -> float:
        return self.ridge_length + self.hip_length


# ---------------------------------------------------------------------------
# Catalog items (closed union on ``kind``)
# ---------------------------------------------------------------------------

class _CatalogItemBase(_CamelRecord):
    id: str
    name: str
    category: Category
    unit: str = "each"
    price: float = 0.0
    coverage: Optional[float] = None
    coverage_unit: Optional[str] = None
    proposal_description: Optional[str] = None

    @field_validator("unit", mode="before")
    @classmethod
    def _normalise_unit(cls, value: Any) -> str:
        text = str(value or "").strip().lower()
        return text or "each"

    @field_validator("price", mode="before")
    @classmethod
    def _coerce_price(cls, value: Any) -> float:
        return to_number(value)

    @field_validator("coverage", mode="before")
    @classmethod
    def _coerce_coverage(cls, value: Any) -> Optional[float]:
        if value is None or value == "":
            return None
        return to_number(value)

    @field_validator("coverage_unit", mode="before")
    @classmethod
    def _normalise_coverage_unit(cls, value: Any) -> Optional[str]:
        if value is None:
            return None
        text = str(value).strip().lower()
        return text or None

    @model_validator(mode="after")
    def _coverage_pairing(self):
        if (self.coverage is None) != (self.coverage_unit is None):
            raise ValueError(
                f"Item {self.id!r}: coverage and coverage_unit must be set together"
            )
        return self

    @property
    def is_vendor_item(self) -> bool:
        return False

    @property
    def is_custom_item(self) -> bool:
        return False


class PriceListItem(_CatalogItemBase):
    """Owner price-list entry."""
    kind: Literal["price_list"] = "price_list"


class VendorItem(_CatalogItemBase):
    """Line taken from an extracted vendor quote. Price is the vendor's raw unit price."""
    kind: Literal["vendor"] = "vendor"
    vendor_quote_id: str
    vendor_category: Optional[VendorCategory] = None

    @property
    def is_vendor_item(self) -> bool:
        return True


class CustomItem(_CatalogItemBase):
    """Ad-hoc item typed in for a single estimate."""
    kind: Literal["custom"] = "custom"

    @property
    def is_custom_item(self) -> bool:
        return True


CatalogItem = Annotated[
    Union[PriceListItem, VendorItem, CustomItem],
    Field(discriminator="kind"),
]


# ---------------------------------------------------------------------------
# Vendor quotes
# ---------------------------------------------------------------------------

class VendorQuote(_Record):
    id: str
    estimate_id: str = ""
    vendor: VendorName = "schafer"
    quote_number: str = ""
    quote_date: str = ""
    project_address: str = ""
    file_name: str = ""
    subtotal: float = 0.0      # pre-tax sum of line items
    tax: float = 0.0
    total: float = 0.0         # subtotal + tax + freight/fees


class VendorQuoteItem(_Record):
    id: str
    vendor_quote_id: str
    name: str = "Vendor Item"
    unit: str = "each"
    price: float = 0.0
    quantity: float = 0.0
    extended_price: float = 0.0
    category: VendorItemCategory = "materials"
    vendor_category: VendorCategory = "panels"


# ---------------------------------------------------------------------------
# Selection & knobs
# ---------------------------------------------------------------------------

class SelectionState(_CamelRecord):
    """Which items are on the estimate and their base (pre-waste) quantities."""
    selected_item_ids: List[str] = Field(default_factory=list)
    item_quantities: Dict[str, float] = Field(default_factory=dict)
    # ids whose quantity a human typed; never re-derived on remeasurement
    manual_overrides: List[str] = Field(default_factory=list)

    @field_validator("selected_item_ids", "manual_overrides")
    @classmethod
    def _unique_ids(cls, value: List[str]) -> List[str]:
        return list(dict.fromkeys(value))


class FinancialKnobs(_CamelRecord):
    """Percentage knobs (0–100) driving waste and the financial cascade."""
    waste_percent: float = FINANCIAL_DEFAULTS["waste_percent"]
    sundries_percent: float = FINANCIAL_DEFAULTS["sundries_percent"]
    office_cost_percent: float = FINANCIAL_DEFAULTS["office_cost_percent"]
    margin_percent: float = FINANCIAL_DEFAULTS["margin_percent"]
    sales_tax_percent: float = FINANCIAL_DEFAULTS["sales_tax_percent"]

    def ensure_valid(self) -> "FinancialKnobs":
        """Raise ConfigurationError when the knobs make the cascade undefined."""
        if not math.isfinite(self.margin_percent) or self.margin_percent >= 100:
            raise ConfigurationError(
                f"margin_percent must be strictly less than 100 (got {self.margin_percent})",
                field="marginPercent",
            )
        return self


class CustomerInfo(_CamelRecord):
    name: str = ""
    address: str = ""
    phone: str = ""


# ---------------------------------------------------------------------------
# Output
# ---------------------------------------------------------------------------

class LineItem(_CamelRecord):
    """A catalog item resolved against a quantity."""
    id: str
    name: str
    category: Category
    unit: str = "each"
    price: float = 0.0           # effective unit price (vendor-adjusted where applicable)
    coverage: Optional[float] = None
    coverage_unit: Optional[str] = None
    proposal_description: Optional[str] = None
    kind: ItemKind = "price_list"
    base_quantity: float = 0.0
    quantity: float = 0.0        # after waste
    waste_added: float = 0.0
    total: float = 0.0
    is_custom_item: bool = False
    is_optional: bool = False


class ValidationWarning(_CamelRecord):
    id: str
    message: str
    severity: Literal["warning", "error"] = "warning"
    field: Optional[str] = None


def _empty_by_category() -> Dict[str, List[LineItem]]:
    return {category: [] for category in CATEGORIES}


def _empty_totals() -> Dict[str, float]:
    return {category: 0.0 for category in CATEGORIES}


class Estimate(_CamelRecord):
    """The engine's sole output. Rebuilt in full on every calculation."""
    line_items: List[LineItem] = Field(default_factory=list)
    optional_items: List[LineItem] = Field(default_factory=list)
    by_category: Dict[str, List[LineItem]] = Field(default_factory=_empty_by_category)
    totals: Dict[str, float] = Field(default_factory=_empty_totals)

    sundries_amount: float = 0.0
    base_cost: float = 0.0
    office_allocation: float = 0.0
    total_cost: float = 0.0
    sell_price: float = 0.0
    gross_profit: float = 0.0
    profit_margin: float = 0.0
    sales_tax_amount: float = 0.0
    final_price: float = 0.0

    waste_percent: float = 0.0
    sundries_percent: float = 0.0
    office_cost_percent: float = 0.0
    margin_percent: float = 0.0
    sales_tax_percent: float = 0.0

    measurements: Measurements = Field(default_factory=Measurements)
    customer_info: CustomerInfo = Field(default_factory=CustomerInfo)
    section_headers: Optional[Dict[str, str]] = None
    intro_letter_text: Optional[str] = None
    generated_at: str = ""

    @property
    def knobs(self) -> FinancialKnobs:
        return FinancialKnobs(
            waste_percent=self.waste_percent,
            sundries_percent=self.sundries_percent,
            office_cost_percent=self.office_cost_percent,
            margin_percent=self.margin_percent,
            sales_tax_percent=self.sales_tax_percent,
        )

    def to_record(self) -> Dict[str, Any]:
        """JSON-ready dict in the persisted (camelCase) shape."""
        return self.model_dump(mode="json", by_alias=True)

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Estimate":
        return cls.model_validate(record)


class EstimateInputs(_CamelRecord):
    """Everything a single calculate() call reads."""
    measurements: Measurements
    price_items: List[PriceListItem] = Field(default_factory=list)
    vendor_quotes: List[VendorQuote] = Field(default_factory=list)
    vendor_quote_items: List[VendorQuoteItem] = Field(default_factory=list)
    custom_items: List[CustomItem] = Field(default_factory=list)
    price_overrides: Dict[str, float] = Field(default_factory=dict)
    name_overrides: Dict[str, str] = Field(default_factory=dict)
    selection: SelectionState = Field(default_factory=SelectionState)
    knobs: FinancialKnobs = Field(default_factory=FinancialKnobs)
    customer_info: CustomerInfo = Field(default_factory=CustomerInfo)
    section_headers: Optional[Dict[str, str]] = None
    is_tear_off: bool = False
    # Fixed timestamp for reproducible output; "now" when omitted
    generated_at: Optional[str] = None
