"""AI assistant: reply generation and mood classification"""
import asyncio
import logging

from domain.constants import AIRole
from domain.models import AIResponseEvent
from events.publisher import EventPublisher

logger = logging.getLogger(__name__)

SUGGESTION_PREFIX = "Suggestion:"


def parse_suggestions(reply: str) -> list[str]:
    """Extract the ``Suggestion:`` lines of a reply"""
    return [
        line[len(SUGGESTION_PREFIX):].strip()
        for line in reply.splitlines()
        if line.startswith(SUGGESTION_PREFIX)
    ]


class MockedAIAgent:
    """Mocked wellness assistant that answers using keyword intent matching"""

    # Intent definitions - keywords that trigger specific responses
    intents = {
        "crisis": {
            "keywords": ["suicide", "kill myself", "self-harm", "hurt myself", "end my life"],
            "response": "I'm really sorry you're feeling this way. You don't have to go through this alone. Please contact your local emergency number or a crisis line right now.\nSuggestion: Call or text a crisis hotline\nSuggestion: Reach out to someone you trust"
        },
        "anxiety": {
            "keywords": ["anxious", "anxiety", "panic", "nervous", "worried", "worry"],
            "response": "It sounds like you're carrying a lot of worry. Let's slow things down together.\nSuggestion: Try box breathing: in for 4, hold for 4, out for 4, hold for 4\nSuggestion: Name five things you can see around you"
        },
        "sleep": {
            "keywords": ["sleep", "insomnia", "tired", "exhausted", "can't rest"],
            "response": "Rest matters a lot for how we feel. A steady wind-down routine can help.\nSuggestion: Put screens away 30 minutes before bed\nSuggestion: Keep a consistent wake-up time"
        },
        "stress": {
            "keywords": ["stress", "stressed", "overwhelmed", "pressure", "burnout"],
            "response": "Feeling overwhelmed is a signal worth listening to. Breaking things into smaller steps can make them lighter.\nSuggestion: Write down the one task that matters most today\nSuggestion: Take a five-minute walk"
        },
        "goals": {
            "keywords": ["goal", "habit", "motivation", "progress", "routine"],
            "response": "Small, consistent steps build lasting habits. Let's pick something achievable.\nSuggestion: Set one goal you can finish this week\nSuggestion: Track it daily in your mood journal"
        },
    }

    # Opening line per assistant role
    role_preambles: dict[str, str] = {
        "therapist": "Thank you for sharing that with me.",
        "coach": "Great that you reached out!",
        "emergency": "I'm here with you right now.",
    }

    # Mood lexicon: mood -> keywords
    moods = {
        "anxious": ["anxious", "nervous", "worried", "panic", "scared", "afraid"],
        "sad": ["sad", "down", "lonely", "depressed", "hopeless", "cry"],
        "angry": ["angry", "mad", "furious", "annoyed", "frustrated"],
        "happy": ["happy", "glad", "great", "excited", "grateful", "calm"],
        "tired": ["tired", "exhausted", "drained", "sleepy"],
    }

    intensifiers = ["very", "really", "so", "extremely", "totally"]

    def __init__(self, publisher: EventPublisher, role: AIRole = "therapist", response_delay: float = 0.5) -> None:
        self.publisher = publisher
        self.role = role
        self.response_delay = response_delay

    def detect_intent(self, message: str) -> str:
        """Detect intent from user message based on keywords"""
        message_lower = message.lower()

        for intent_name, intent_data in self.intents.items():
            for keyword in intent_data["keywords"]:
                if keyword in message_lower:
                    return intent_name

        return "default"

    def generate_reply(self, message: str, role: AIRole | None = None) -> str:
        """Generate reply text for ``message`` in the given assistant role"""
        role = role or self.role
        intent = self.detect_intent(message)
        # Crisis replies skip the role preamble and always point to emergency help
        if intent == "crisis":
            return self.intents["crisis"]["response"]

        preamble = self.role_preambles.get(role, self.role_preambles["therapist"])
        if intent in self.intents:
            return f"{preamble} {self.intents[intent]['response']}"
        return f"{preamble} Could you tell me a little more about how you're feeling?"

    def classify_mood(self, text: str) -> dict:
        """Classify the primary mood of ``text``

        Returns:
            {"mood": str, "intensity": int 1-10, "keywords": list[str]}
        """
        text_lower = text.lower()
        best_mood = "neutral"
        best_keywords: list[str] = []

        for mood, keywords in self.moods.items():
            found = [keyword for keyword in keywords if keyword in text_lower]
            if len(found) > len(best_keywords):
                best_mood = mood
                best_keywords = found

        if not best_keywords:
            return {"mood": "neutral", "intensity": 1, "keywords": []}

        intensity = 3 + 2 * len(best_keywords)
        intensity += sum(2 for word in text_lower.split() if word in self.intensifiers)
        intensity += text.count("!")
        return {"mood": best_mood, "intensity": max(1, min(10, intensity)), "keywords": best_keywords}

    async def process_request(self, request_event: dict) -> None:
        """Generate a reply to an AI request event and publish it

        Failures propagate to the caller; no reply is published for them.
        """
        user_message: str = request_event.get("text", "")
        user_id: str = request_event.get("user_id", "")

        intent = self.detect_intent(user_message)
        logger.debug("Detected intent: %s", intent)

        # Simulate model latency
        if self.response_delay > 0:
            await asyncio.sleep(self.response_delay)

        reply = self.generate_reply(user_message)
        await self.publisher.publish(AIResponseEvent(
            user_id=user_id,
            text=reply,
            original_message=user_message,
            detected_intent=intent,
        ))
