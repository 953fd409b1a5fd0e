"""
DeepL API Integration

Translation of post captions into multiple target languages.
"""

import asyncio
from typing import Dict, List, Optional

import httpx

from unisocial.config.settings import get_settings
from unisocial.integrations.http import VendorClient
from unisocial.utils.error_handling import DeepLError

# Our language codes to DeepL codes
DEEPL_LANG = {
    "ko": "KO", "en": "EN", "zh": "ZH", "ja": "JA",
    "es": "ES", "fr": "FR", "de": "DE", "pt": "PT-BR",
    "ru": "RU", "ar": "AR", "hi": "HI", "th": "TH",
    "vi": "VI", "id": "ID", "tr": "TR", "it": "IT",
    "nl": "NL", "pl": "PL", "sv": "SV", "uk": "UK",
}


def deepl_code(lang: str) -> str:
    return DEEPL_LANG.get(lang, lang.upper())


class DeepLClient(VendorClient):
    """DeepL REST client; free-tier keys (``:fx``) use the free endpoint."""

    service = "deepl"
    error_class = DeepLError

    def __init__(
        self,
        api_key: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        settings = get_settings()
        key = settings.deepl_api_key if api_key is None else api_key
        base_url = (
            "https://api-free.deepl.com/v2" if key.endswith(":fx") else "https://api.deepl.com/v2"
        )
        super().__init__(base_url, transport=transport)
        self.api_key = key

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    def _headers(self):
        return {"Authorization": f"DeepL-Auth-Key {self.api_key}"}

    async def translate(self, text: str, target_lang: str, source_lang: Optional[str] = None) -> str:
        form = {"text": text, "target_lang": deepl_code(target_lang)}
        if source_lang:
            form["source_lang"] = deepl_code(source_lang)

        data = await self._request("POST", "/translate", "translate", data=form)
        translations = data.get("translations") or []
        return translations[0].get("text", "") if translations else ""

    async def translate_multi(self, content: str, from_lang: str, to_langs: List[str]) -> Dict[str, str]:
        """
        Translate into every target language concurrently.

        A failed language keeps the original text rather than failing the batch.
        """

        async def _one(lang: str) -> str:
            try:
                return await self.translate(content, lang, from_lang)
            except DeepLError as e:
                self.logger.warning("DeepL translation failed", target_lang=lang, error=str(e))
                return content

        results = await asyncio.gather(*(_one(lang) for lang in to_langs))
        return dict(zip(to_langs, results))
