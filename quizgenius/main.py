import inspect
import logging
from dataclasses import dataclass, field
from typing import Any

from quizgenius.core.config import settings
from quizgenius.core.logging import setup_logging
from quizgenius.crud.store import DatabaseStore, KeyValueStore
from quizgenius.exceptions import BaseAppError, StorageError
from quizgenius.services import credential_service
from quizgenius.services.generation_service import QuizGenerator
from quizgenius.services.session_service import SessionManager

logger = logging.getLogger(__name__)

INTERNAL_ERROR_MESSAGE = "알 수 없는 오류가 발생했습니다. 잠시 후 다시 시도해주세요."

# 화면 계층에 노출하는 세션 동작 (복원/응시 시작 등 내부 전이는 제외)
SESSION_ACTIONS = frozenset({
    "navigate",
    "start_generation",
    "abandon_generation",
    "select_option",
    "enter_text_answer",
    "clear_answer",
    "go_to_question",
    "next_question",
    "previous_question",
    "toggle_review_flag",
    "submission_check",
    "tick",
    "submit_quiz",
    "exit_quiz",
    "reset",
    "reattempt",
    "result_summary",
    "review_items",
    "history_overview",
    "has_incomplete_attempt",
    "open_history_item",
    "delete_history_item",
    "clear_history",
    "dismiss_error",
    "dismiss_critical_error",
    "dismiss_resume_notice",
})


@dataclass
class ActionResult:
    """화면 계층에 전달하는 동작 결과"""

    ok: bool
    value: Any = None
    error: str | None = None
    status_code: int = 200
    details: dict = field(default_factory=dict)


class QuizApp:
    """세션 관리자와 API 키 관리를 묶은 앱 셸

    화면 계층은 `dispatch`만 호출하며, 예외는 여기서 메시지로 변환된다.
    """

    def __init__(self, store: KeyValueStore, session: SessionManager):
        self.store = store
        self.session = session
        self._credential_actions = {
            "add_credential": self._add_credential,
            "remove_credential": self._remove_credential,
            "list_credentials": self._list_credentials,
        }

    async def _add_credential(self, api_key: str) -> list[str]:
        await credential_service.add_credential(self.store, api_key)
        return credential_service.list_masked_credentials(self.store)

    def _remove_credential(self, index: int) -> list[str]:
        credential_service.remove_credential(self.store, index)
        return credential_service.list_masked_credentials(self.store)

    def _list_credentials(self) -> list[str]:
        return credential_service.list_masked_credentials(self.store)

    def _resolve(self, action: str):
        handler = self._credential_actions.get(action)
        if handler is not None:
            return handler
        if action in SESSION_ACTIONS:
            return getattr(self.session, action)
        return None

    async def dispatch(self, action: str, *args, **kwargs) -> ActionResult:
        handler = self._resolve(action)
        if handler is None:
            logger.warning(f"알 수 없는 동작 요청: {action}")
            return ActionResult(ok=False, error=f"지원하지 않는 동작입니다: {action}", status_code=404)

        try:
            value = handler(*args, **kwargs)
            if inspect.isawaitable(value):
                value = await value
        except StorageError as e:
            logger.error(f"Storage error: {e.__class__.__name__} - {e.message}", exc_info=True)
            return ActionResult(ok=False, error=e.message, status_code=e.status_code)
        except BaseAppError as e:
            logger.warning(f"Application error: {e.__class__.__name__} - {e.message}, action={action}")
            return ActionResult(ok=False, error=e.message, status_code=e.status_code)
        except Exception as e:
            logger.error(f"Unhandled exception: {e.__class__.__name__}, action={action}", exc_info=True)
            return ActionResult(ok=False, error=INTERNAL_ERROR_MESSAGE, status_code=500)

        return ActionResult(ok=True, value=value, details={"screen": self.session.screen.value})


def create_app(store: KeyValueStore | None = None, generator: QuizGenerator | None = None) -> QuizApp:
    """로깅/저장소/생성기를 연결하고 이전 세션을 복원한 앱 생성"""
    setup_logging()
    store = store or DatabaseStore()
    session = SessionManager(store, generator=generator or QuizGenerator())
    session.restore()
    logger.info(f"QuizGenius 시작: environment={settings.environment}, screen={session.screen.value}")
    return QuizApp(store, session)
