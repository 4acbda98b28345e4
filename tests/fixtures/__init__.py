from .model import FakeModelClient, FakeOpenAI, completion
from .quizzes import make_quiz, quiz_json, quiz_payload
from .store import FlakyStore

__all__ = [
    "FakeModelClient",
    "FakeOpenAI",
    "FlakyStore",
    "completion",
    "make_quiz",
    "quiz_json",
    "quiz_payload",
]
