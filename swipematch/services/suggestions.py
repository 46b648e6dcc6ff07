"""Opening-message suggestions for new matches."""

from typing import Dict, List, Protocol


class SuggestionProvider(Protocol):
    """Anything that can propose opening lines for a conversation."""

    def suggest(self, recipient_name: str, relationship_intent: str) -> List[str]: ...


DEFAULT_INTENT = "casual"

TEMPLATES: Dict[str, List[str]] = {
    "long-term": [
        "Hi {name}, I noticed we share an interest in puzzles. What's your favorite kind to solve?",
        "Hello {name}! I'm hoping to find something meaningful here. What are you looking for?",
        "{name}, your profile really caught my attention. I'd love to get to know you better.",
    ],
    "casual": [
        "Hey {name}! How's your day going? Any fun plans for the weekend?",
        "{name}, your profile made me smile. What do you enjoy doing for fun?",
        "Hi there {name}! Just wanted to say hello and see where things go.",
    ],
    "friendship": [
        "Hey {name}, I'm new in town and looking to make some friends. Fancy showing me around?",
        "Hi {name}! Looks like we enjoy similar things. Would be great to hang out sometime!",
        "{name}, I'm trying to widen my circle. What do you like doing with friends?",
    ],
    "one-night": [
        "Hey {name}, I'm only in town for the night. Want to meet up for a drink?",
        "{name}, any interest in meeting up tonight?",
        "Direct and honest: I'm looking for something casual. If that's not your thing, no worries!",
    ],
}


class TemplateSuggestionProvider:
    """Returns canned suggestions keyed by relationship intent.

    Unknown intents fall back to the casual templates.
    """

    def __init__(self, templates: Dict[str, List[str]] = TEMPLATES, default_intent: str = DEFAULT_INTENT) -> None:
        self._templates = templates
        self._default_intent = default_intent

    def suggest(self, recipient_name: str, relationship_intent: str) -> List[str]:
        templates = self._templates.get(relationship_intent) or self._templates[self._default_intent]
        return [template.format(name=recipient_name) for template in templates]
