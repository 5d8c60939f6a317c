"""
UserService のユニットテスト（リポジトリはモック）
"""
import pytest
from datetime import datetime, timezone
from unittest.mock import AsyncMock
from uuid import uuid4

from cultlist.domain.entity.password_policy import PasswordPolicy
from cultlist.domain.entity.user_entity import UserEntity
from cultlist.domain.exception.user_exceptions import (
    UserAlreadyExistsError,
    UserNotFoundError,
    UserValidationError,
)
from cultlist.port.dto.user_dto import UpdateUserDTO, UserCredentialsDTO, UserSearchCriteria
from cultlist.usecase.user_management.user_service import UserService, parse_user_id


def make_user(username="alice", **overrides) -> UserEntity:
    values = dict(
        id=uuid4(),
        username=username,
        email=f"{username}@example.com",
        first_name=None,
        last_name=None,
        bio=None,
        created_at=datetime.now(timezone.utc),
    )
    values.update(overrides)
    return UserEntity(**values)


@pytest.fixture
def mock_user_repo():
    repo = AsyncMock()
    repo.get_by_username.return_value = None
    repo.get_by_email.return_value = None
    return repo


@pytest.fixture
def hasher():
    hasher = AsyncMock()
    hasher.hash.side_effect = lambda password: f"hashed:{password}"
    hasher.verify.side_effect = lambda password, password_hash: password_hash == f"hashed:{password}"
    return hasher


@pytest.fixture
def user_service(mock_user_repo, hasher):
    return UserService(mock_user_repo, hasher, PasswordPolicy())


class TestCreate:
    @pytest.mark.asyncio
    async def test_create_hashes_password_before_storage(self, user_service, mock_user_repo):
        mock_user_repo.create.return_value = make_user()
        
        result = await user_service.create("alice", "alice@example.com", "Password123!", bio="hi")
        
        assert result.username == "alice"
        dto = mock_user_repo.create.call_args.args[0]
        assert dto.password_hash == "hashed:Password123!"
        assert dto.bio == "hi"
    
    @pytest.mark.asyncio
    async def test_create_rejects_invalid_email(self, user_service, mock_user_repo):
        with pytest.raises(UserValidationError, match="email"):
            await user_service.create("alice", "invalid-email", "Password123!")
        mock_user_repo.create.assert_not_called()
    
    @pytest.mark.asyncio
    async def test_create_rejects_weak_password(self, user_service, mock_user_repo):
        with pytest.raises(UserValidationError, match="Password requirements not met"):
            await user_service.create("alice", "alice@example.com", "weakpassword")
        mock_user_repo.create.assert_not_called()
    
    @pytest.mark.asyncio
    async def test_create_rejects_email_shaped_username(self, user_service, mock_user_repo):
        # 他人のメールアドレスをユーザー名として登録させない
        with pytest.raises(UserValidationError, match="username"):
            await user_service.create("bob@example.com", "alice@example.com", "Password123!")
        mock_user_repo.create.assert_not_called()
    
    @pytest.mark.asyncio
    async def test_create_duplicate_username(self, user_service, mock_user_repo):
        mock_user_repo.get_by_username.return_value = make_user()
        
        with pytest.raises(UserAlreadyExistsError) as exc_info:
            await user_service.create("alice", "new@example.com", "Password123!")
        assert exc_info.value.field == "username"
    
    @pytest.mark.asyncio
    async def test_create_duplicate_email(self, user_service, mock_user_repo):
        mock_user_repo.get_by_email.return_value = make_user()
        
        with pytest.raises(UserAlreadyExistsError) as exc_info:
            await user_service.create("bob", "alice@example.com", "Password123!")
        assert exc_info.value.field == "email"


class TestGet:
    def test_parse_user_id(self):
        user_id = uuid4()
        assert parse_user_id(str(user_id)) == user_id
        with pytest.raises(UserValidationError, match="Wrong id format"):
            parse_user_id("not-a-uuid")
    
    @pytest.mark.asyncio
    async def test_get_by_id_not_found(self, user_service, mock_user_repo):
        mock_user_repo.get_by_id.return_value = None
        
        with pytest.raises(UserNotFoundError):
            await user_service.get_by_id(str(uuid4()))
    
    @pytest.mark.asyncio
    async def test_get_by_id_malformed(self, user_service, mock_user_repo):
        with pytest.raises(UserValidationError):
            await user_service.get_by_id("123")
        mock_user_repo.get_by_id.assert_not_called()
    
    @pytest.mark.asyncio
    async def test_get_by_email(self, user_service, mock_user_repo):
        mock_user_repo.get_by_email.return_value = make_user()
        
        assert (await user_service.get_by_email("alice@example.com")).username == "alice"
    
    @pytest.mark.asyncio
    async def test_check_username_exists(self, user_service, mock_user_repo):
        assert await user_service.check_username_exists("alice") is False
        mock_user_repo.get_by_username.return_value = make_user()
        assert await user_service.check_username_exists("alice") is True


class TestList:
    @pytest.mark.asyncio
    async def test_list_passes_criteria_and_total(self, user_service, mock_user_repo):
        mock_user_repo.count.return_value = 42
        mock_user_repo.list.return_value = [make_user()]
        
        result = await user_service.list(search=" alice ", limit=10, offset=0)
        
        assert result.total_count == 42
        assert result.limit == 10
        assert result.offset == 0
        mock_user_repo.count.assert_awaited_once_with("alice")
        mock_user_repo.list.assert_awaited_once_with(UserSearchCriteria(search="alice", limit=10, offset=0))
    
    @pytest.mark.asyncio
    async def test_page_overrides_offset(self, user_service, mock_user_repo):
        mock_user_repo.count.return_value = 0
        mock_user_repo.list.return_value = []
        
        result = await user_service.list(limit=20, offset=5, page=3)
        
        assert result.offset == 40
        assert result.users == []
    
    @pytest.mark.asyncio
    async def test_blank_search_means_no_filter(self, user_service, mock_user_repo):
        mock_user_repo.count.return_value = 0
        mock_user_repo.list.return_value = []
        
        await user_service.list(search="   ")
        
        mock_user_repo.count.assert_awaited_once_with(None)
    
    @pytest.mark.asyncio
    @pytest.mark.parametrize("kwargs", [{"page": 0}, {"limit": 0}, {"offset": -1}])
    async def test_invalid_pagination(self, user_service, kwargs):
        with pytest.raises(UserValidationError):
            await user_service.list(**kwargs)
    
    @pytest.mark.asyncio
    async def test_page_without_limit_is_rejected(self, user_service, mock_user_repo):
        with pytest.raises(UserValidationError, match="Page requires a limit"):
            await user_service.list(limit=None, page=2)
        mock_user_repo.list.assert_not_called()
    
    @pytest.mark.asyncio
    async def test_no_limit_without_page(self, user_service, mock_user_repo):
        mock_user_repo.count.return_value = 0
        mock_user_repo.list.return_value = []
        
        result = await user_service.list(limit=None, offset=3)
        
        assert result.limit is None
        mock_user_repo.list.assert_awaited_once_with(UserSearchCriteria(search=None, limit=None, offset=3))


class TestUpdate:
    @pytest.mark.asyncio
    async def test_update_bio_only(self, user_service, mock_user_repo):
        existing = make_user()
        mock_user_repo.get_by_id.return_value = existing
        mock_user_repo.update.return_value = existing
        
        await user_service.update(str(existing.id), bio="new bio")
        
        mock_user_repo.update.assert_awaited_once_with(existing.id, UpdateUserDTO(bio="new bio"))
    
    @pytest.mark.asyncio
    async def test_change_password_requires_old_password(self, user_service, mock_user_repo):
        existing = make_user()
        mock_user_repo.get_by_id.return_value = existing
        
        with pytest.raises(UserValidationError, match="provide old password"):
            await user_service.update(str(existing.id), password="NewPassword1!")
        mock_user_repo.update.assert_not_called()
    
    @pytest.mark.asyncio
    async def test_change_password_with_wrong_old_password(self, user_service, mock_user_repo):
        existing = make_user()
        mock_user_repo.get_by_id.return_value = existing
        mock_user_repo.get_credentials_by_id.return_value = UserCredentialsDTO(
            existing.id, existing.username, existing.email, "hashed:Password123!"
        )
        
        with pytest.raises(UserValidationError, match="Wrong old password"):
            await user_service.update(str(existing.id), password="NewPassword1!", old_password="nope")
    
    @pytest.mark.asyncio
    async def test_change_password(self, user_service, mock_user_repo):
        existing = make_user()
        mock_user_repo.get_by_id.return_value = existing
        mock_user_repo.update.return_value = existing
        mock_user_repo.get_credentials_by_id.return_value = UserCredentialsDTO(
            existing.id, existing.username, existing.email, "hashed:Password123!"
        )
        
        await user_service.update(str(existing.id), password="NewPassword1!", old_password="Password123!")
        
        dto = mock_user_repo.update.call_args.args[1]
        assert dto.password_hash == "hashed:NewPassword1!"
    
    @pytest.mark.asyncio
    async def test_new_password_must_meet_policy(self, user_service, mock_user_repo):
        existing = make_user()
        mock_user_repo.get_by_id.return_value = existing
        mock_user_repo.get_credentials_by_id.return_value = UserCredentialsDTO(
            existing.id, existing.username, existing.email, "hashed:Password123!"
        )
        
        with pytest.raises(UserValidationError, match="Password requirements not met"):
            await user_service.update(str(existing.id), password="weak", old_password="Password123!")
    
    @pytest.mark.asyncio
    async def test_update_to_username_of_other_user(self, user_service, mock_user_repo):
        existing = make_user()
        mock_user_repo.get_by_id.return_value = existing
        mock_user_repo.get_by_username.return_value = make_user("bob")
        
        with pytest.raises(UserAlreadyExistsError):
            await user_service.update(str(existing.id), username="bob")
    
    @pytest.mark.asyncio
    async def test_keeping_own_email_is_not_a_conflict(self, user_service, mock_user_repo):
        existing = make_user()
        mock_user_repo.get_by_id.return_value = existing
        mock_user_repo.get_by_email.return_value = existing
        mock_user_repo.update.return_value = existing
        
        await user_service.update(str(existing.id), email=existing.email)
        
        mock_user_repo.update.assert_awaited_once()
    
    @pytest.mark.asyncio
    async def test_update_missing_user(self, user_service, mock_user_repo):
        mock_user_repo.get_by_id.return_value = None
        
        with pytest.raises(UserNotFoundError):
            await user_service.update(str(uuid4()), bio="x")


class TestDelete:
    @pytest.mark.asyncio
    async def test_delete_returns_id(self, user_service, mock_user_repo):
        user_id = uuid4()
        mock_user_repo.delete.return_value = True
        
        assert await user_service.delete(str(user_id)) == user_id
    
    @pytest.mark.asyncio
    async def test_delete_missing(self, user_service, mock_user_repo):
        mock_user_repo.delete.return_value = False
        
        with pytest.raises(UserNotFoundError):
            await user_service.delete(str(uuid4()))
