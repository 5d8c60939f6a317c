"""
ユーザー関連の例外クラス

このモジュールは、ユーザー管理に関する様々な例外を定義します。
認証、登録、データ取得等のユーザー操作で発生する例外を統一的に管理します。
"""

from typing import Optional

class UserError(Exception):
    """ユーザー関連の基底例外クラス"""
    def __init__(self, message: str, error_code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.error_code = error_code

class UserNotFoundError(UserError):
    """指定されたユーザーが見つからない場合の例外"""
    def __init__(self, message: str):
        super().__init__(message, "user_not_found")

class UserAlreadyExistsError(UserError):
    """ユーザー名またはメールアドレスが既に使われている場合の例外"""
    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message, "conflict")
        self.field = field

class UserValidationError(UserError):
    """入力値（メール形式、パスワード複雑性、ID形式等）が不正な場合の例外"""
    def __init__(self, message: str):
        super().__init__(message, "validation_error")

class InvalidCredentialsError(UserError):
    """認証情報が不正な場合の例外

    ユーザーが存在しないのかパスワードが違うのかは区別しない。
    """
    def __init__(self, message: str = "Invalid username/email or password"):
        super().__init__(message, "invalid_credentials")
