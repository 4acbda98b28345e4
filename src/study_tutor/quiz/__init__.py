from .generator import QuizGenerator, normalize_topic
from .parsing import extract_payload, parse_quiz
from .scoring import ScoreResult, score
from .session import QuizPhase, QuizSession
