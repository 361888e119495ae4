# insight formatter: predicted mood -> human-readable band + emoji

import math

# (lower bound, label, emoji), checked top-down
INSIGHT_BANDS = [
    (9.0, "Joyful and energized", "🤩"),
    (8.0, "Upbeat and positive", "😄"),
    (7.0, "Content and steady", "🙂"),
    (6.0, "Calm and balanced", "😌"),
    (5.0, "Neutral, a mixed day", "😐"),
    (4.0, "A little low", "😕"),
    (3.0, "Low energy, be gentle with yourself", "😔"),
    (2.0, "Struggling, lean on what helps", "😞"),
    (1.0, "Heavy day, support is available", "😢"),
]

FALLBACK_BAND = ("Very challenged, reach out for support", "💙")


def format_insight(predicted_mood: float) -> tuple[str, str]:
    """returns (label, emoji) for a predicted mood"""
    if not math.isfinite(predicted_mood):
        predicted_mood = 5.5
    for lower, label, emoji in INSIGHT_BANDS:
        if predicted_mood >= lower:
            return label, emoji
    return FALLBACK_BAND
