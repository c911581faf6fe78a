"""세션/진행 상태 관리자

현재 화면, 진행 중인 문제 세트/설정/결과, 응시 중 자동 저장,
응시 기록(히스토리)과의 동기화를 담당한다.

저장소 쓰기 실패는 로그만 남기고 화면 전환을 막지 않는다.
"""
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable

from quizgenius.crud import attempt as attempt_crud
from quizgenius.crud import profile as profile_crud
from quizgenius.crud import session as session_crud
from quizgenius.crud.store import KeyValueStore
from quizgenius.exceptions import (
    AllCredentialsExhaustedError,
    AttemptNotFoundError,
    BaseAppError,
    GenerationFailedError,
    InvalidSessionActionError,
    StorageError,
)
from quizgenius.schemas.quiz import (
    ChoiceQuestion,
    GeneratedQuizData,
    Question,
    QuizConfig,
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
from quizgenius.services import credential_service, scoring_service
from quizgenius.services.generation_service import QuizGenerator

logger = logging.getLogger(__name__)

MIN_QUESTION_COUNT = 3
MAX_QUESTION_COUNT = 50
MIN_DURATION_MINUTES = 1
MAX_DURATION_MINUTES = 180
MAX_FILE_UPLOADS = 5

DEFAULT_TITLE = "Generated Assessment"
REATTEMPT_FALLBACK_TITLE = "Assessment"
# 제한 시간이 기록되지 않은 예전 기록을 이어서 풀 때 사용하는 값
LEGACY_DURATION_MINUTES = 15

GENERIC_ERROR_MESSAGE = "퀴즈 생성에 실패했습니다. 연결 상태를 확인하고 다시 시도해주세요."

# 전용 동작 없이 바로 이동 가능한 화면
_NAVIGATION = {
    Screen.LANDING: {Screen.SETUP, Screen.API_SETUP, Screen.HOW_TO},
    Screen.API_SETUP: {Screen.SETUP, Screen.LANDING, Screen.HOW_TO},
    Screen.HOW_TO: {Screen.LANDING, Screen.API_SETUP, Screen.SETUP},
    Screen.SETUP: {Screen.HISTORY, Screen.LANDING, Screen.API_SETUP, Screen.HOW_TO},
    Screen.HISTORY: {Screen.SETUP},
    Screen.RESULTS: {Screen.REVIEW, Screen.HISTORY},
    Screen.REVIEW: {Screen.RESULTS},
}


@dataclass(slots=True, frozen=True)
class HistoryEntry:
    attempt: Attempt
    summary: scoring_service.ScoreSummary


def validate_setup(config: QuizConfig) -> dict[str, str]:
    """설정 폼 검증 (필드명 → 메시지, 비어 있으면 통과)"""
    errors: dict[str, str] = {}
    if not config.user_name.strip():
        errors["user_name"] = "이름을 입력해주세요."
    if not config.has_material:
        errors["content"] = "학습 자료를 입력하거나 파일을 첨부해주세요."
    elif len(config.file_uploads) > MAX_FILE_UPLOADS:
        errors["content"] = f"파일은 최대 {MAX_FILE_UPLOADS}개까지 첨부할 수 있습니다."
    else:
        for upload in config.file_uploads:
            try:
                upload.payload
            except GenerationFailedError as e:
                errors["content"] = e.message
                break
    if not MIN_QUESTION_COUNT <= config.question_count <= MAX_QUESTION_COUNT:
        errors["question_count"] = f"문제 개수는 {MIN_QUESTION_COUNT}-{MAX_QUESTION_COUNT}개 사이여야 합니다."
    if not MIN_DURATION_MINUTES <= config.duration_minutes <= MAX_DURATION_MINUTES:
        errors["duration_minutes"] = (
            f"제한 시간은 {MIN_DURATION_MINUTES}-{MAX_DURATION_MINUTES}분 사이여야 합니다."
        )
    return errors


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_attempt_id() -> str:
    return str(uuid.uuid4())


class SessionManager:
    """화면 상태 머신 + 응시 진행 관리"""

    def __init__(
        self,
        store: KeyValueStore,
        generator: QuizGenerator | None = None,
        credential_provider: Callable[[KeyValueStore], list[str]] | None = None,
        clock: Callable[[], datetime] | None = None,
        id_factory: Callable[[], str] | None = None,
    ):
        self._store = store
        self._generator = generator or QuizGenerator()
        self._credential_provider = credential_provider or credential_service.get_available_credentials
        self._clock = clock or _utcnow
        self._id_factory = id_factory or _new_attempt_id

        self.screen: Screen = Screen.LANDING
        self.config: QuizConfig | None = None
        self.questions: list[Question] = []
        self.result: Attempt | None = None
        self.progress: ProgressCheckpoint | None = None

        self.error: str | None = None
        self.critical_error_logs: str | None = None
        self.resume_notice = False
        self.field_errors: dict[str, str] = {}
        self.credential_source_log = ""

        self._submitted = False
        self._generation_seq = 0

    # --- 저장소 헬퍼 ---

    def _persist(self, action: str, func: Callable, *args):
        """저장소 호출 (실패 시 로그만 남기고 None)"""
        try:
            return func(self._store, *args)
        except StorageError as e:
            logger.warning(f"{action} 실패 (무시하고 계속 진행): {e.message}")
            return None

    def _persist_snapshot(self) -> None:
        if self.screen in SNAPSHOT_SCREENS:
            snapshot = SessionSnapshot(
                screen=self.screen,
                config=self.config,
                questions=self.questions,
                attempt=self.result,
            )
            self._persist("세션 스냅샷 저장", session_crud.save_snapshot, snapshot)
        else:
            self._persist("세션 스냅샷 삭제", session_crud.clear_snapshot)

    def _set_screen(self, screen: Screen) -> None:
        logger.debug(f"화면 전환: {self.screen.value} -> {screen.value}")
        self.screen = screen
        self._persist_snapshot()

    def _reset_session(self) -> None:
        self.config = None
        self.questions = []
        self.result = None
        self.progress = None
        self.error = None
        self._submitted = False

    # --- 시작 / 화면 이동 ---

    def restore(self) -> Screen:
        """앱 시작 시 세션 스냅샷 확인

        생성 중이던 세션은 설정 화면으로, 응시/결과/리뷰 중이던 세션은
        화면을 복원하지 않고 설정 화면 + 1회 안내로 처리한다 (재개는 히스토리에서).
        """
        snapshot = self._persist("세션 스냅샷 로드", session_crud.get_snapshot)
        if snapshot is None:
            return self.screen

        if snapshot.screen == Screen.GENERATING:
            self._set_screen(Screen.SETUP)
        elif snapshot.screen in SNAPSHOT_SCREENS:
            self.resume_notice = True
            self._set_screen(Screen.SETUP)
            logger.info(f"이전 응시 화면({snapshot.screen.value})은 히스토리에 보존됨, 설정 화면으로 시작")
        return self.screen

    def navigate(self, target: Screen) -> Screen:
        """전용 동작이 필요 없는 화면 이동"""
        if target not in _NAVIGATION.get(self.screen, set()):
            raise InvalidSessionActionError(
                f"'{self.screen.value}' 화면에서 '{target.value}' 화면으로 이동할 수 없습니다."
            )
        if target == Screen.LANDING:
            self._reset_session()
        self._set_screen(target)
        return self.screen

    def _require_screen(self, *screens: Screen) -> None:
        if self.screen not in screens:
            raise InvalidSessionActionError(f"현재 화면({self.screen.value})에서는 허용되지 않는 동작입니다.")

    # --- 생성 ---

    @property
    def remembered_name(self) -> str | None:
        return self._persist("이름 조회", profile_crud.get_remembered_name)

    async def start_generation(self, config: QuizConfig) -> bool:
        """설정 검증 → 생성 → 성공 시 응시 시작 (실패 시 설정 화면으로 복귀)"""
        self._require_screen(Screen.SETUP)

        config = config.model_copy(
            update={
                "user_name": config.user_name.strip(),
                "topic": (config.topic or "").strip() or None,
            }
        )
        self.field_errors = validate_setup(config)
        if self.field_errors:
            return False

        self._persist("이름 저장", profile_crud.remember_name, config.user_name)
        self.config = config
        self.error = None
        self.critical_error_logs = None
        self.credential_source_log = self._persist(
            "키 출처 확인", credential_service.describe_credential_source
        ) or credential_service.SOURCE_SYSTEM

        self._generation_seq += 1
        seq = self._generation_seq
        self._set_screen(Screen.GENERATING)

        try:
            credentials = self._credential_provider(self._store)
            data = await self._generator.generate(config, credentials)
        except AllCredentialsExhaustedError as e:
            if self._is_stale(seq):
                return False
            self.critical_error_logs = e.report
            self._set_screen(Screen.SETUP)
            return False
        except BaseAppError as e:
            if self._is_stale(seq):
                return False
            logger.error(f"문제 생성 실패: {e.__class__.__name__} - {e.message}")
            self.error = e.message
            self._set_screen(Screen.SETUP)
            return False
        except Exception as e:
            if self._is_stale(seq):
                return False
            logger.error(f"문제 생성 중 예상치 못한 오류: {e.__class__.__name__}", exc_info=True)
            self.error = GENERIC_ERROR_MESSAGE
            self._set_screen(Screen.SETUP)
            return False

        if self._is_stale(seq):
            return False
        self.start_quiz(data, config)
        return True

    def _is_stale(self, seq: int) -> bool:
        stale = seq != self._generation_seq or self.screen != Screen.GENERATING
        if stale:
            logger.info(f"중단된 생성 요청 결과 폐기: seq={seq}")
        return stale

    def abandon_generation(self) -> None:
        """생성 대기만 중단 (진행 중인 호출 자체는 취소하지 않음)"""
        self._require_screen(Screen.GENERATING)
        self._generation_seq += 1
        self._set_screen(Screen.SETUP)

    # --- 응시 시작 ---

    def start_quiz(self, data: GeneratedQuizData, config: QuizConfig) -> Attempt:
        """생성 결과로 새 응시 시작 (생성 중 화면에서만 허용)"""
        self._require_screen(Screen.GENERATING)
        title = data.title or config.topic or DEFAULT_TITLE
        self.config = config.model_copy(update={"topic": title})
        self.questions = list(data.questions)
        attempt = Attempt(
            id=self._id_factory(),
            title=title,
            created_at=self._clock(),
            questions=self.questions,
            duration_minutes=config.duration_minutes,
            candidate_name=config.user_name or None,
        )
        self._begin_attempt(attempt)
        return attempt

    def reattempt(self) -> Attempt:
        """같은 문제 세트로 새 응시 기록 생성 (기존 기록은 그대로 둠)"""
        self._require_screen(Screen.RESULTS)
        if not self.questions:
            raise InvalidSessionActionError("다시 풀 문제가 없습니다.")

        title = (self.result.title if self.result else None) or (
            self.config.topic if self.config else None
        ) or REATTEMPT_FALLBACK_TITLE
        duration = (
            (self.config.duration_minutes if self.config else 0)
            or (self.result.duration_minutes if self.result else 0)
            or LEGACY_DURATION_MINUTES
        )
        if self.config is not None:
            self.config = self.config.model_copy(update={"duration_minutes": duration})
        else:
            self.config = QuizConfig(
                user_name=(self.result.candidate_name if self.result else None) or "",
                topic=title,
                question_count=min(len(self.questions), MAX_QUESTION_COUNT),
                duration_minutes=duration,
            )

        attempt = Attempt(
            id=self._id_factory(),
            title=title,
            created_at=self._clock(),
            questions=self.questions,
            duration_minutes=duration,
            candidate_name=self.config.user_name or None,
        )
        self._begin_attempt(attempt)
        return attempt

    def _begin_attempt(self, attempt: Attempt) -> None:
        self.result = attempt
        self._persist("히스토리 추가", attempt_crud.upsert_attempt, attempt)
        self._persist("진행 상태 초기화", session_crud.clear_checkpoint)
        logger.info(f"응시 시작: attempt_id={attempt.id}, questions={len(attempt.questions)}")
        self._enter_quiz()

    def _allotted_seconds(self) -> int:
        minutes = self.result.duration_minutes if self.result else 0
        return (minutes or LEGACY_DURATION_MINUTES) * 60

    def _enter_quiz(self, checkpoint: ProgressCheckpoint | None = None) -> None:
        if checkpoint is None:
            checkpoint = ProgressCheckpoint(
                quiz_fingerprint=quiz_fingerprint(self.questions),
                attempt_id=self.result.id,
                time_left=self._allotted_seconds(),
            )
        self.progress = checkpoint
        self._submitted = False
        self._set_screen(Screen.QUIZ)
        self._checkpoint()

    # --- 응시 중 ---

    def _require_active_quiz(self) -> ProgressCheckpoint:
        if self.screen != Screen.QUIZ or self.progress is None or self._submitted:
            raise InvalidSessionActionError("진행 중인 퀴즈가 없습니다.")
        return self.progress

    def _checkpoint(self) -> None:
        """체크포인트 저장 + 히스토리의 진행 중 기록에 반영 (응시 ID로 매칭)"""
        progress = self.progress
        self._persist("진행 상태 저장", session_crud.save_checkpoint, progress)
        updated = self._persist(
            "히스토리 동기화",
            attempt_crud.update_attempt_progress,
            progress.attempt_id,
            progress.answers,
            self.elapsed_seconds,
            progress.current_index,
            progress.marked_for_review,
        )
        if updated is not None:
            self.result = updated

    @property
    def current_question(self) -> Question | None:
        if self.progress is None or not self.questions:
            return None
        return self.questions[self.progress.current_index]

    @property
    def elapsed_seconds(self) -> int:
        if self.progress is None:
            return self.result.elapsed_seconds if self.result else 0
        return max(0, self._allotted_seconds() - self.progress.time_left)

    @property
    def answered_count(self) -> int:
        return len(self.progress.answers) if self.progress else 0

    def select_option(self, option_index: int) -> None:
        progress = self._require_active_quiz()
        question = self.current_question
        if not isinstance(question, ChoiceQuestion):
            raise InvalidSessionActionError("선택지가 없는 문제입니다.")
        if not 0 <= option_index < len(question.options):
            raise InvalidSessionActionError(f"선택지 인덱스가 범위를 벗어났습니다: {option_index}")
        progress.answers[question.id] = option_index
        self._checkpoint()

    def enter_text_answer(self, text: str) -> None:
        progress = self._require_active_quiz()
        question = self.current_question
        if not isinstance(question, ShortAnswerQuestion):
            raise InvalidSessionActionError("단답형 문제가 아닙니다.")
        progress.answers[question.id] = text
        self._checkpoint()

    def clear_answer(self) -> None:
        progress = self._require_active_quiz()
        progress.answers.pop(self.current_question.id, None)
        self._checkpoint()

    def go_to_question(self, index: int) -> int:
        progress = self._require_active_quiz()
        progress.current_index = max(0, min(index, len(self.questions) - 1))
        self._checkpoint()
        return progress.current_index

    def next_question(self) -> int:
        return self.go_to_question(self._require_active_quiz().current_index + 1)

    def previous_question(self) -> int:
        return self.go_to_question(self._require_active_quiz().current_index - 1)

    def toggle_review_flag(self) -> bool:
        """현재 문제 검토 표시 토글 (표시되면 True)"""
        progress = self._require_active_quiz()
        question_id = self.current_question.id
        if question_id in progress.marked_for_review:
            progress.marked_for_review.remove(question_id)
            marked = False
        else:
            progress.marked_for_review.append(question_id)
            marked = True
        self._checkpoint()
        return marked

    def submission_check(self) -> str:
        """제출 전 확인: empty(제출 불가) / incomplete(미응답 있음) / ready"""
        progress = self._require_active_quiz()
        answered = len(progress.answers)
        if answered == 0:
            return "empty"
        if answered < len(self.questions):
            return "incomplete"
        return "ready"

    def tick(self) -> None:
        """1초 타이머. 남은 시간이 1초 이하이면 자동 제출"""
        if self.screen != Screen.QUIZ or self.progress is None or self._submitted:
            return
        if self.progress.time_left <= 1:
            self.progress.time_left = 0
            self.submit_quiz()
            return
        self.progress.time_left -= 1
        self._checkpoint()

    def submit_quiz(self) -> Attempt | None:
        """응시 완료 처리 (같은 틱에 중복 호출되어도 한 번만 반영)"""
        if self.screen != Screen.QUIZ or self.progress is None or self._submitted or self.result is None:
            logger.debug("이미 제출되었거나 진행 중인 퀴즈가 없어 제출 요청 무시")
            return self.result
        if self.result.status == AttemptStatus.COMPLETED:
            return self.result

        self._submitted = True
        completed = self.result.model_copy(
            update={
                "status": AttemptStatus.COMPLETED,
                "user_answers": dict(self.progress.answers),
                "elapsed_seconds": self.elapsed_seconds,
                "current_index": 0,
                "marked_for_review": list(self.progress.marked_for_review),
            }
        )
        self.result = completed
        self._persist("히스토리 갱신", attempt_crud.upsert_attempt, completed)
        self._persist("진행 상태 삭제", session_crud.clear_checkpoint)
        self.progress = None
        logger.info(f"응시 완료: attempt_id={completed.id}, elapsed={completed.elapsed_seconds}s")
        self._set_screen(Screen.RESULTS)
        return completed

    def exit_quiz(self, save: bool) -> None:
        """제출 없이 나가기: save=True면 기록/체크포인트 보존, False면 기록 삭제"""
        self._require_screen(Screen.QUIZ)
        if not save and self.result is not None:
            self._persist("히스토리 삭제", attempt_crud.delete_attempt, self.result.id)
            self._persist("진행 상태 삭제", session_crud.clear_checkpoint)
            logger.info(f"응시 폐기: attempt_id={self.result.id}")
        self._reset_session()
        self._set_screen(Screen.SETUP)

    # --- 결과 / 리뷰 ---

    def reset(self) -> None:
        """결과 화면에서 새 퀴즈 만들기"""
        self._require_screen(Screen.RESULTS, Screen.REVIEW)
        self._reset_session()
        self._persist("진행 상태 삭제", session_crud.clear_checkpoint)
        self._set_screen(Screen.SETUP)

    def result_summary(self) -> scoring_service.ScoreSummary:
        if self.result is None:
            raise InvalidSessionActionError("표시할 결과가 없습니다.")
        return scoring_service.score_attempt(self.result.questions, self.result.user_answers)

    def review_items(self) -> list[scoring_service.QuestionResult]:
        if self.result is None:
            raise InvalidSessionActionError("표시할 결과가 없습니다.")
        return scoring_service.grade_questions(self.result.questions, self.result.user_answers)

    # --- 히스토리 ---

    def history_overview(self) -> list[HistoryEntry]:
        attempts = self._persist("히스토리 조회", attempt_crud.get_attempts_newest_first) or []
        return [
            HistoryEntry(attempt=a, summary=scoring_service.score_attempt(a.questions, a.user_answers))
            for a in attempts
        ]

    def has_incomplete_attempt(self) -> bool:
        return bool(self._persist("히스토리 조회", attempt_crud.has_in_progress_attempt))

    def open_history_item(self, attempt_id: str) -> Screen:
        """완료 기록은 결과 화면(읽기 전용), 진행 중 기록은 이어서 풀기"""
        self._require_screen(Screen.HISTORY)
        attempt = self._persist("히스토리 조회", attempt_crud.get_attempt_by_id, attempt_id)
        if attempt is None:
            raise AttemptNotFoundError(attempt_id)

        self.result = attempt
        self.questions = list(attempt.questions)
        question_count = min(len(attempt.questions), MAX_QUESTION_COUNT)

        if attempt.is_completed:
            self.config = QuizConfig(
                user_name=attempt.candidate_name or "History Review",
                topic=attempt.title,
                question_count=question_count,
                duration_minutes=0,
            )
            self.progress = None
            self._set_screen(Screen.RESULTS)
            return self.screen

        self.config = QuizConfig(
            user_name=attempt.candidate_name or "Resuming Candidate",
            topic=attempt.title,
            question_count=question_count,
            duration_minutes=attempt.duration_minutes or LEGACY_DURATION_MINUTES,
        )
        checkpoint = ProgressCheckpoint(
            quiz_fingerprint=quiz_fingerprint(self.questions),
            attempt_id=attempt.id,
            current_index=min(attempt.current_index, len(self.questions) - 1),
            answers=dict(attempt.user_answers),
            time_left=max(0, self._allotted_seconds() - attempt.elapsed_seconds),
            marked_for_review=list(attempt.marked_for_review),
        )
        self._persist("진행 상태 저장", session_crud.save_checkpoint, checkpoint)
        logger.info(f"응시 재개: attempt_id={attempt.id}, time_left={checkpoint.time_left}s")
        self._enter_quiz(checkpoint)
        return self.screen

    def delete_history_item(self, attempt_id: str) -> bool:
        self._require_screen(Screen.HISTORY)
        return bool(self._persist("히스토리 삭제", attempt_crud.delete_attempt, attempt_id))

    def clear_history(self) -> None:
        self._require_screen(Screen.HISTORY)
        self._persist("히스토리 전체 삭제", attempt_crud.clear_attempts)
        self._set_screen(Screen.SETUP)

    # --- 알림 ---

    def dismiss_error(self) -> None:
        self.error = None

    def dismiss_critical_error(self) -> None:
        self.critical_error_logs = None

    def dismiss_resume_notice(self) -> None:
        self.resume_notice = False
