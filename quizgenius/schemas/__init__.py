from quizgenius.schemas.ai import (
    AIQuizGenerationResponse,
    AIQuizQuestion,
)
from quizgenius.schemas.quiz import (
    Answer,
    ChoiceQuestion,
    Difficulty,
    FileUpload,
    GeneratedQuizData,
    Question,
    QuizConfig,
    QuizType,
    ShortAnswerQuestion,
)
from quizgenius.schemas.session import (
    SNAPSHOT_SCREENS,
    Attempt,
    AttemptStatus,
    ProgressCheckpoint,
    Screen,
    SessionSnapshot,
    quiz_fingerprint,
)

__all__ = [
    "AIQuizGenerationResponse",
    "AIQuizQuestion",
    "Answer",
    "ChoiceQuestion",
    "ShortAnswerQuestion",
    "Question",
    "Difficulty",
    "QuizType",
    "FileUpload",
    "QuizConfig",
    "GeneratedQuizData",
    "Attempt",
    "AttemptStatus",
    "ProgressCheckpoint",
    "Screen",
    "SessionSnapshot",
    "SNAPSHOT_SCREENS",
    "quiz_fingerprint",
]
