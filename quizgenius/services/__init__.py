from quizgenius.services.ai_service import generate_content, is_quota_error, validate_api_key
from quizgenius.services.credential_service import (
    add_credential,
    describe_credential_source,
    get_available_credentials,
    list_masked_credentials,
    mask_credential,
    remove_credential,
)
from quizgenius.services.generation_service import QuizGenerator, parse_quiz_response
from quizgenius.services.scoring_service import (
    AnswerStatus,
    QuestionResult,
    ScoreSummary,
    grade_answer,
    grade_questions,
    percentage,
    score_attempt,
    score_band,
)
from quizgenius.services.session_service import HistoryEntry, SessionManager, validate_setup

__all__ = [
    "generate_content",
    "is_quota_error",
    "validate_api_key",
    "get_available_credentials",
    "describe_credential_source",
    "mask_credential",
    "list_masked_credentials",
    "add_credential",
    "remove_credential",
    "QuizGenerator",
    "parse_quiz_response",
    "AnswerStatus",
    "QuestionResult",
    "ScoreSummary",
    "grade_answer",
    "grade_questions",
    "percentage",
    "score_attempt",
    "score_band",
    "HistoryEntry",
    "SessionManager",
    "validate_setup",
]
