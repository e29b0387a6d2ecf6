"""Learning content generation (vocabulary and posts) using an LLM."""

import json

import structlog
from openai import AsyncOpenAI
from pydantic import BaseModel, ValidationError

logger = structlog.get_logger()

WORDS_SYSTEM_PROMPT = """\
You are an English teacher preparing vocabulary for Hebrew-speaking learners.

For the given topic and difficulty level, list useful English words. For each word give:
1. the English word
2. an accurate Hebrew translation in context
3. a short English explanation
4. an example sentence related to the topic

Respond ONLY with a JSON object:
{
    "words": [
        {"word": "...", "translation": "...", "explanation": "...", "example": "..."}
    ]
}
"""

POST_SYSTEM_PROMPT = """\
You write short, engaging social media style posts for English learners.
The post must be about the given topic, suit the given level, use every
required word naturally, and end with a question inviting the reader to comment.

Respond ONLY with a JSON object:
{"text": "<post text>"}
"""


class GeneratedWord(BaseModel):
    word: str
    translation: str = ""
    explanation: str = ""
    example: str = ""


class ContentGenerator:
    """Generates vocabulary lists and discussion posts.

    Args:
        api_key: OpenAI API key.
        model: Model to use for generation.
    """

    def __init__(self, api_key: str, model: str = "gpt-4o-mini"):
        self.client = AsyncOpenAI(api_key=api_key)
        self.model = model

    async def _complete_json(self, system_prompt: str, user_prompt: str) -> dict:
        response = await self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            temperature=0.7,
            response_format={"type": "json_object"},
        )
        return json.loads(response.choices[0].message.content)

    async def generate_words(
        self, topic_name: str, level: int, count: int = 5
    ) -> list[GeneratedWord]:
        """Generate vocabulary for a topic level.

        Returns:
            Generated words; empty on any generation or parsing failure.
        """
        try:
            result = await self._complete_json(
                WORDS_SYSTEM_PROMPT,
                f"Topic: {topic_name}\nLevel: {level}\nNumber of words: {count}",
            )
            words = [GeneratedWord.model_validate(w) for w in result.get("words", [])]
        except (json.JSONDecodeError, ValidationError, AttributeError, TypeError):
            logger.exception("word_generation_parse_failed", topic=topic_name, level=level)
            return []
        except Exception:
            logger.exception("word_generation_failed", topic=topic_name, level=level)
            return []

        logger.info("words_generated", topic=topic_name, level=level, count=len(words))
        return words[:count]

    async def generate_post(
        self, topic_name: str, level: int, required_words: list[str]
    ) -> str:
        """Generate a discussion post using the required words.

        Returns:
            Post text; empty on failure.
        """
        try:
            result = await self._complete_json(
                POST_SYSTEM_PROMPT,
                f"Topic: {topic_name}\nLevel: {level}\n"
                f"Required words: {', '.join(required_words)}",
            )
        except Exception:
            logger.exception("post_generation_failed", topic=topic_name, level=level)
            return ""

        text = result.get("text") if isinstance(result, dict) else None
        if not isinstance(text, str):
            logger.warning("post_generation_empty", topic=topic_name, level=level)
            return ""
        logger.info("post_generated", topic=topic_name, level=level, length=len(text))
        return text.strip()
