"""Models for generated product payloads."""

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _coerce_number(value: object) -> object:
    if value is None or isinstance(value, int | float):
        return value
    if isinstance(value, str):
        cleaned = value.strip().replace(",", ".").split(" ")[0]
        try:
            return float(cleaned)
        except ValueError:
            return None
    return None


class GeneratedNutrition(BaseModel):
    """Estimated nutrition returned by the model."""

    calories: float | None = None
    protein: float | None = None
    carbohydrates: float | None = None
    fat: float | None = None
    fiber: float | None = None
    sugar: float | None = None
    sodium: float | None = None

    @field_validator("*", mode="before")
    @classmethod
    def _numbers(cls, value: object) -> object:
        return _coerce_number(value)


class GeneratedProduct(BaseModel):
    """Structured output for a synthesized generic product."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: str = Field(min_length=1)
    brand: str | None = None
    category: str | None = None
    subcategory: str | None = None
    description: str | None = None
    nutritional_info: GeneratedNutrition = Field(
        default_factory=GeneratedNutrition, alias="nutritionalInfo"
    )
    allergens: list[str] = Field(default_factory=list)
    ingredients: str | None = None

    @field_validator("nutritional_info", mode="before")
    @classmethod
    def _default_nutrition(cls, value: object) -> object:
        return value if isinstance(value, dict) else {}

    @field_validator("allergens", mode="before")
    @classmethod
    def _allergen_list(cls, value: object) -> list[str]:
        if not isinstance(value, list):
            return []
        return [str(item).strip() for item in value if str(item).strip()]

    @field_validator("ingredients", mode="before")
    @classmethod
    def _ingredients_text(cls, value: object) -> str | None:
        if isinstance(value, list):
            return ", ".join(str(item) for item in value)
        return value if isinstance(value, str) else None
