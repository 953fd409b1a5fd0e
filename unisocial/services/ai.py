"""
AI Assistance Service

Caption/hashtag suggestions and content ideas from Claude, and caption
translation through DeepL. Every billable call is written to
``ai_usage_log`` so it counts against the monthly AI quota.
"""

from typing import Any, Dict, List

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from unisocial.integrations.claude import ClaudeClient, parse_json_reply
from unisocial.integrations.deepl import DeepLClient
from unisocial.models.ai import IdeasRequest, SuggestRequest, TranslateRequest
from unisocial.services.usage import UsageService
from unisocial.utils.error_handling import ClaudeAPIError, DeepLError, ValidationError

LANG_NAMES = {
    "ko": "한국어", "en": "English", "zh": "中文", "ja": "日本語",
    "es": "Español", "fr": "Français", "de": "Deutsch", "pt": "Português",
    "ru": "Русский", "ar": "العربية", "hi": "हिन्दी", "th": "ไทย",
    "vi": "Tiếng Việt", "id": "Bahasa Indonesia", "tr": "Türkçe", "it": "Italiano",
    "nl": "Nederlands", "pl": "Polski", "sv": "Svenska", "uk": "Українська",
}

DEFAULT_PLATFORMS = ["instagram", "youtube", "twitter"]

DEFAULT_IDEAS = [
    {"title": "Behind the scenes", "description": "Show your process", "platforms": ["instagram", "tiktok"]},
    {"title": "Tips & Tricks", "description": "Share expertise", "platforms": ["youtube", "linkedin"]},
    {"title": "Q&A Session", "description": "Answer follower questions", "platforms": ["tiktok", "threads"]},
]

CAPTION_TOKENS = 1500
IDEAS_TOKENS = 1024


def lang_name(code: str) -> str:
    return LANG_NAMES.get(code, code)


def caption_prompt(topic: str, platforms: List[str], tone: str, language: str) -> str:
    name = lang_name(language)
    captions = ",\n    ".join(f'"{p}": "optimized caption for {p}"' for p in platforms)
    times = ",\n    ".join(f'"{p}": "recommended time"' for p in platforms)
    return f"""You are a global social media marketing expert.

Topic: "{topic}"
Target platforms: {", ".join(platforms)}
Tone: {tone}
Language: {name}

Generate platform-optimized captions and hashtags.
Each caption MUST be written in {name}.
Respect each platform's character limits and style.

Respond ONLY with this JSON (no other text):
{{
  "captions": {{
    {captions}
  }},
  "hashtags": ["tag1", "tag2", "tag3", "tag4", "tag5"],
  "best_posting_times": {{
    {times}
  }}
}}"""


def ideas_prompt(category: str, count: int, language: str) -> str:
    return f"""Suggest {count} social media content ideas.
Category: {category}
Language: ALL text must be in {lang_name(language)}

Respond ONLY with a JSON array (no other text):
[{{"title": "title", "description": "brief description", "platforms": ["best platforms"]}}]"""


class AIService:
    """Service for AI captions, ideas and translation."""

    def __init__(self, db: AsyncSession, claude: ClaudeClient, deepl: DeepLClient):
        self.claude = claude
        self.deepl = deepl
        self.usage = UsageService(db)
        self.logger = structlog.get_logger(__name__)

    async def _ask_claude(self, prompt: str, max_tokens: int) -> str:
        try:
            return await self.claude.complete(prompt, max_tokens=max_tokens)
        except ClaudeAPIError as e:
            raise ClaudeAPIError(
                e.detail,
                upstream_status=e.upstream_status,
                message_key="ai_error",
                original_error=e,
            ) from e

    async def suggest_captions(self, user_id: int, request: SuggestRequest, lang: str) -> Dict[str, Any]:
        """
        Platform-specific captions, hashtags and posting times for a topic.

        Without a Claude key a canned suggestion is returned and nothing is
        logged against the quota.
        """
        if not request.topic:
            raise ValidationError("ai_topic_required", field="topic")

        platforms = request.platforms or DEFAULT_PLATFORMS
        language = request.language or lang

        if not self.claude.configured:
            return {
                "captions": {p: f"{request.topic} #socialhub #crosspost" for p in platforms},
                "hashtags": ["socialhub", "crosspost", "socialmedia"],
                "best_posting_times": {},
                "source": "default",
            }

        text = await self._ask_claude(
            caption_prompt(request.topic, platforms, request.tone or "casual", language),
            CAPTION_TOKENS,
        )
        try:
            suggestion = parse_json_reply(text)
            if not isinstance(suggestion, dict):
                raise ValueError("caption reply is not an object")
        except ValueError:
            self.logger.warning("Claude caption reply was not JSON, using raw text")
            suggestion = {
                "captions": {p: text for p in platforms},
                "hashtags": [],
                "best_posting_times": {},
            }

        await self.usage.log_ai_usage(user_id, "suggest_caption", CAPTION_TOKENS)
        return {
            "captions": suggestion.get("captions") or {},
            "hashtags": suggestion.get("hashtags") or [],
            "best_posting_times": suggestion.get("best_posting_times") or {},
            "source": "claude",
        }

    async def suggest_ideas(self, user_id: int, request: IdeasRequest, lang: str) -> Dict[str, Any]:
        if not self.claude.configured:
            return {"ideas": DEFAULT_IDEAS, "source": "default"}

        text = await self._ask_claude(
            ideas_prompt(request.category or "general", request.count or 5, request.language or lang),
            IDEAS_TOKENS,
        )
        try:
            ideas = parse_json_reply(text)
        except ValueError:
            self.logger.warning("Claude ideas reply was not JSON")
            ideas = []
        if not isinstance(ideas, list):
            ideas = []

        await self.usage.log_ai_usage(user_id, "suggest_ideas", IDEAS_TOKENS)
        return {"ideas": [idea for idea in ideas if isinstance(idea, dict)], "source": "claude"}

    async def translate(self, user_id: int, request: TranslateRequest) -> Dict[str, Any]:
        """Translate a caption into several languages with DeepL."""
        if not request.content or not request.from_lang or not request.to_langs:
            raise ValidationError(
                "ai_translate_fields_required",
                extra={"example": {"content": "안녕하세요!", "fromLang": "ko", "toLangs": ["en", "es", "ja"]}},
            )
        if not self.deepl.configured:
            raise ValidationError("ai_translate_unconfigured")

        try:
            translations = await self.deepl.translate_multi(request.content, request.from_lang, request.to_langs)
        except DeepLError as e:
            raise DeepLError(e.detail, upstream_status=e.upstream_status, message_key="ai_error", original_error=e) from e

        await self.usage.log_ai_usage(
            user_id, "translate_deepl", len(request.content) * len(request.to_langs)
        )
        return {
            "original": request.content,
            "fromLang": request.from_lang,
            "translations": translations,
            "source": "deepl",
        }
