"""Default topics and levels installed at startup."""

import structlog

from unity_voice.storage.repository import ScoreRepository

logger = structlog.get_logger()

# (topic name, Hebrew name, icon)
DEFAULT_TOPICS: list[tuple[str, str, str]] = [
    ("Society and Multiculturalism", "חברה ורב תרבותיות", "🌍"),
    ("Innovation and Technology", "חדשנות וטכנולוגיה", "💡"),
    ("History and Heritage", "הסטוריה ומורשת", "🏛️"),
    ("Holocaust and Revival", "שואה ותקומה", "✡️"),
    ("Environment and Sustainability", "סביבה וקיימות", "🌱"),
    ("Economy and Entrepreneurship", "כלכלה ויזמות", "💰"),
    ("Diplomacy and International Relations", "דיפלומטיה ויחסים בינלאומיים", "🤝"),
    ("Iron Swords War", "מלחמת חרבות ברזל", "⚔️"),
]


async def seed_reference_data(repository: ScoreRepository, levels_per_topic: int = 3) -> int:
    """Insert the default topics with levels 1..levels_per_topic; existing rows are kept.

    Returns:
        Number of topic and level rows created.
    """
    created = 0
    async with repository.transaction() as uow:
        for topic_name, topic_he, icon in DEFAULT_TOPICS:
            created += await uow.add_topic(topic_name, topic_he, icon)
            for level in range(1, levels_per_topic + 1):
                created += await uow.add_level(topic_name, level)
    logger.info("reference_data_seeded", topics=len(DEFAULT_TOPICS), created=created)
    return created
