# hts_manager/scripts/debug_one_product.py
import asyncio
import sys

from hts_manager.classifier.prompt_builder import PromptBuilder
from hts_manager.classifier.response_validator import ResponseValidator
from hts_manager.config import config
from hts_manager.errors import ClassificationError
from hts_manager.io.db_io import SqlProductCatalog
from hts_manager.llm_client.provider_client import AnthropicLLMClient


async def debug_product(product_id: int) -> None:
    # 1. Берём товар из БД и строим снимок
    snapshot = SqlProductCatalog().get_product_snapshot(product_id)
    if snapshot is None:
        print(f"Product id={product_id} not found")
        return

    prompt = PromptBuilder().build_prompt(snapshot)
    print("PROMPT:\n", prompt)

    # 2. Один запрос к провайдеру, без записи в БД и без учёта квоты
    try:
        raw = await AnthropicLLMClient().classify(prompt, config.llm.get_api_key())
        print("RAW:", raw)
        print("RESULT:", ResponseValidator().parse(raw))
    except ClassificationError as exc:
        print(f"ERROR: {exc.kind.value}: {exc.message}")


if __name__ == "__main__":
    asyncio.run(debug_product(int(sys.argv[1])))
