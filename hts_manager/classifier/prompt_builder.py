# hts_manager/classifier/prompt_builder.py
from __future__ import annotations

from dataclasses import dataclass

from hts_manager.data_models import ProductSnapshot
from hts_manager.errors import ProductDataInvalid


MAX_DESCRIPTION_LENGTH = 1000
MIN_NAME_LENGTH = 3


PROMPT_SYSTEM_INSTRUCTIONS = """
You are an expert in Harmonized Tariff Schedule (HTS) classification for US imports.
Analyze this product and provide the most accurate 10-digit HTS code.
""".strip()


PROMPT_RULES = """
IMPORTANT RULES:
1. Provide the full 10-digit HTS code (format: ####.##.####, four digits, two digits, four digits)
2. Consider the product's primary function and material composition
3. Use the most specific classification available
4. If uncertain between two codes, prefer the one with the higher duty rate (conservative approach)
""".strip()


PROMPT_OUTPUT_FORMAT = """
Respond with a single JSON object in this exact format:
{
    "hts_code": "####.##.####",
    "confidence": 0.0 to 1.0,
    "reasoning": "Brief explanation"
}
""".strip()


@dataclass
class PromptBuilder:
    """
    Строитель промпта для классификации одного товара.

    Детерминирован: один и тот же снимок товара -> один и тот же промпт.
    """

    max_description_length: int = MAX_DESCRIPTION_LENGTH

    def validate(self, snapshot: ProductSnapshot) -> None:
        name = (snapshot.name or "").strip()
        if len(name) < MIN_NAME_LENGTH:
            raise ProductDataInvalid(
                f"Product name must be at least {MIN_NAME_LENGTH} characters long",
                context={"product_id": snapshot.product_id, "name": snapshot.name},
            )

    def build_product_block(self, snapshot: ProductSnapshot) -> str:
        """
        Текстовый блок с данными товара. Пустые необязательные поля не выводим,
        кроме описания и категорий — они есть всегда, пусть и пустые.
        """
        description = (snapshot.description or "")[: self.max_description_length]

        lines = [
            "PRODUCT INFORMATION:",
            f"Name: {snapshot.name.strip()}",
            f"SKU: {snapshot.sku or ''}",
            f"Description: {description}",
        ]
        if snapshot.short_description:
            short = snapshot.short_description[: self.max_description_length]
            lines.append(f"Short description: {short}")
        lines.append(f"Categories: {', '.join(snapshot.categories)}")
        if snapshot.price:
            lines.append(f"Price: {snapshot.price}")
        if snapshot.weight:
            lines.append(f"Weight: {snapshot.weight}")
        return "\n".join(lines)

    def build_prompt(self, snapshot: ProductSnapshot) -> str:
        self.validate(snapshot)

        return "\n\n".join(
            [
                PROMPT_SYSTEM_INSTRUCTIONS,
                self.build_product_block(snapshot),
                PROMPT_RULES,
                PROMPT_OUTPUT_FORMAT,
            ]
        )
