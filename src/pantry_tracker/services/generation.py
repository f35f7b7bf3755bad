"""Generic product synthesis using a text generation model."""

import asyncio
import json
import logging
import re
from dataclasses import dataclass
from typing import Protocol

from pydantic import ValidationError

from pantry_tracker.domain.generation import GeneratedProduct
from pantry_tracker.domain.products import NutritionInfo, ProductDraft, ProductSource

_logger = logging.getLogger(__name__)

_JSON_BLOCK = re.compile(r"\{.*\}", re.DOTALL)

_SCHEMA_EXAMPLE = """{
  "name": "...",
  "brand": null,
  "category": "...",
  "subcategory": "...",
  "description": "...",
  "nutritionalInfo": {
    "calories": 0, "protein": 0, "carbohydrates": 0, "fat": 0,
    "fiber": 0, "sugar": 0, "sodium": 0
  },
  "allergens": [],
  "ingredients": "..."
}"""

_INSTRUCTIONS = {
    "es": (
        "Eres un asistente experto en nutrición y supermercado. Solo generas "
        "productos genéricos cuando no hay datos reales. El resultado debe ser "
        "plausible pero estimado. No inventes marcas ni datos excesivamente "
        "específicos. Devuelve SOLO JSON válido con la estructura exacta solicitada."
    ),
    "en": (
        "You are a nutrition and grocery expert. Only generate generic products "
        "when no real data exists. Output should be plausible but estimated. "
        "Do not invent brands or overly specific data. Return ONLY valid JSON "
        "with the exact required structure."
    ),
}

_PROMPTS = {
    "es": (
        "Genera un objeto JSON para un producto genérico no verificado "
        'basado en: "{query}".\n'
        "IMPORTANTE: si la entrada incluye una marca, IGNORA LA MARCA y genera el "
        'producto genérico equivalente (ej: "Coca Cola" -> "Refresco de cola").\n'
        "Estructura:\n{schema}\n"
        "Los valores nutricionales son por 100 g. No inventes datos excesivamente "
        "específicos. Devuelve SOLO el JSON, sin texto adicional."
    ),
    "en": (
        "Generate a JSON object for an unverified generic product "
        'based on: "{query}".\n'
        "IMPORTANT: if the input includes a brand, IGNORE THE BRAND and generate the "
        'equivalent generic product (e.g. "Heinz Ketchup" -> "Ketchup").\n'
        "Structure:\n{schema}\n"
        "Nutrition values are per 100 g. Avoid overly specific data. Return ONLY "
        "the JSON, no additional text."
    ),
}


class TextGenerationClient(Protocol):
    """Interface for text completion models."""

    async def complete(
        self,
        *,
        model: str,
        instructions: str,
        prompt: str,
        temperature: float,
    ) -> str:
        """Return free-form model output for a system instruction and prompt."""


@dataclass(frozen=True)
class ParsedProduct:
    """Model output parsed into a generated product."""

    product: GeneratedProduct


@dataclass(frozen=True)
class ParseFailure:
    """Model output that could not be parsed."""

    reason: str


def parse_generated_product(text: str) -> ParsedProduct | ParseFailure:
    """Parse model output as strict JSON, then fall back to the first {...} block."""
    candidates = [text.strip()]
    match = _JSON_BLOCK.search(text)
    if match and match.group(0) != candidates[0]:
        candidates.append(match.group(0))
    reason = "no JSON object in output"
    for candidate in candidates:
        try:
            payload = json.loads(candidate)
        except json.JSONDecodeError as exc:
            reason = f"invalid JSON: {exc.msg}"
            continue
        if not isinstance(payload, dict):
            reason = "JSON output is not an object"
            continue
        try:
            return ParsedProduct(GeneratedProduct.model_validate(payload))
        except ValidationError as exc:
            return ParseFailure(f"schema mismatch: {exc.error_count()} errors")
    return ParseFailure(reason)


@dataclass
class ProductSynthesizer:
    """Synthesizes brand-agnostic product estimates when no real data exists."""

    client: TextGenerationClient | None
    model: str
    timeout_seconds: float = 8.0
    temperature: float = 0.4

    async def generate_generic_product(
        self, query: str, language: str = "es"
    ) -> ProductDraft | None:
        """Return an unverified generic product, or None on any failure."""
        if self.client is None:
            _logger.warning("Generative fallback disabled: no API key configured")
            return None
        lang = language if language in _PROMPTS else "en"
        prompt = _PROMPTS[lang].format(query=query, schema=_SCHEMA_EXAMPLE)
        try:
            text = await asyncio.wait_for(
                self.client.complete(
                    model=self.model,
                    instructions=_INSTRUCTIONS[lang],
                    prompt=prompt,
                    temperature=self.temperature,
                ),
                timeout=self.timeout_seconds,
            )
        except TimeoutError:
            _logger.warning("Generative product timed out: query=%s", query)
            return None
        except Exception as exc:
            _logger.warning("Generative product failed: query=%s error=%s", query, exc)
            return None

        result = parse_generated_product(text or "")
        if isinstance(result, ParseFailure):
            _logger.warning(
                "Generative product unparsable: query=%s reason=%s",
                query,
                result.reason,
            )
            return None
        return _to_draft(result.product)


def _to_draft(generated: GeneratedProduct) -> ProductDraft:
    nutrition = generated.nutritional_info
    return ProductDraft(
        name=generated.name.strip(),
        source=ProductSource.GENERATIVE_FALLBACK,
        brand=None,
        category=generated.category,
        subcategory=generated.subcategory,
        description=generated.description,
        ingredients=generated.ingredients,
        nutrition=NutritionInfo(
            calories=nutrition.calories,
            protein=nutrition.protein,
            carbohydrates=nutrition.carbohydrates,
            fat=nutrition.fat,
            fiber=nutrition.fiber,
            sugar=nutrition.sugar,
            sodium=nutrition.sodium,
        ),
        allergens=tuple(generated.allergens),
        is_verified=False,
    )
