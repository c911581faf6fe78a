"""API 키 관리 테스트"""
from unittest.mock import AsyncMock, patch

import pytest

from quizgenius.crud import profile as profile_crud
from quizgenius.exceptions import InvalidCredentialError
from quizgenius.services import credential_service


def test_mask_credential():
    assert credential_service.mask_credential("AIzaSyABCDEFGH1234") == "AIzaSy...1234"


@pytest.mark.asyncio
async def test_add_credential_validates_and_appends(memory_store):
    validator = AsyncMock(return_value=True)

    keys = await credential_service.add_credential(memory_store, "  key-0000000001 ", validator=validator)
    keys = await credential_service.add_credential(memory_store, "key-0000000002", validator=validator)

    assert keys == ["key-0000000001", "key-0000000002"]
    validator.assert_awaited_with("key-0000000002")
    assert credential_service.list_masked_credentials(memory_store) == ["key-00...0001", "key-00...0002"]


@pytest.mark.asyncio
async def test_add_credential_too_short(memory_store):
    validator = AsyncMock(return_value=True)
    with pytest.raises(InvalidCredentialError):
        await credential_service.add_credential(memory_store, "short", validator=validator)
    validator.assert_not_awaited()


@pytest.mark.asyncio
async def test_add_credential_rejected_by_ping(memory_store):
    with pytest.raises(InvalidCredentialError):
        await credential_service.add_credential(
            memory_store, "key-0000000001", validator=AsyncMock(return_value=False)
        )
    assert profile_crud.get_local_credentials(memory_store) == []


def test_remove_credential(memory_store):
    profile_crud.save_local_credentials(memory_store, ["key-a-000000", "key-b-000000"])

    assert credential_service.remove_credential(memory_store, 0) == ["key-b-000000"]
    with pytest.raises(InvalidCredentialError):
        credential_service.remove_credential(memory_store, 5)


def test_local_credentials_take_precedence(memory_store):
    with patch.object(credential_service.settings, "gemini_api_key", "sys-1, sys-2"):
        assert credential_service.get_available_credentials(memory_store) == ["sys-1", "sys-2"]
        assert credential_service.describe_credential_source(memory_store) == credential_service.SOURCE_SYSTEM

        profile_crud.save_local_credentials(memory_store, ["local-key-01"])
        assert credential_service.get_available_credentials(memory_store) == ["local-key-01"]
        assert credential_service.describe_credential_source(memory_store) == credential_service.SOURCE_LOCAL
