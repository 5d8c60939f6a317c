"""
ユーザー入力のドメインバリデーション

API層のスキーマ検証とは独立に、ユースケース層でも同じルールを適用する。
"""
from email_validator import EmailNotValidError, validate_email

from ...domain.entity.password_policy import PasswordPolicy
from ...domain.exception.user_exceptions import UserValidationError


def ensure_username(username: str) -> str:
    """
    前後の空白を除いたユーザー名を返す

    サインインはユーザー名・メールアドレスのどちらでも受け付けるため、
    メールアドレスと紛らわしい @ を含む名前は登録できない。
    """
    if username is None or not username.strip():
        raise UserValidationError("username: must not be empty")
    if "@" in username:
        raise UserValidationError("username: must not contain '@'")
    return username.strip()


def ensure_email(email: str) -> str:
    try:
        validate_email(email, check_deliverability=False)
    except EmailNotValidError as e:
        raise UserValidationError(f"email: {e}") from e
    return email


def ensure_password(password: str, policy: PasswordPolicy) -> str:
    problems = policy.violations(password)
    if problems:
        raise UserValidationError(
            "password: Password requirements not met: " + ", ".join(problems)
        )
    return password
