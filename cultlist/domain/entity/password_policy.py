"""
パスワードポリシー

サインアップ・パスワード変更時に適用される複雑性ルールを定義します。
満たしていないルールはすべてまとめて報告されます。
"""
from dataclasses import dataclass
from typing import List

SPECIAL_CHARACTERS = "!@#$%^&*()_+-=[]{}|;:,.<>?"


@dataclass(frozen=True)
class PasswordPolicy:
    min_length: int = 8
    max_length: int = 64
    require_uppercase: bool = True
    require_lowercase: bool = True
    require_digit: bool = True
    require_special: bool = True

    def violations(self, password: str) -> List[str]:
        """満たしていないルールの一覧を返す（空なら合格）"""
        problems = []

        if len(password) < self.min_length:
            problems.append(f"at least {self.min_length} characters required")
        if len(password) > self.max_length:
            problems.append(f"at most {self.max_length} characters allowed")
        if self.require_uppercase and not any(c.isupper() for c in password):
            problems.append("uppercase letter required")
        if self.require_lowercase and not any(c.islower() for c in password):
            problems.append("lowercase letter required")
        if self.require_digit and not any(c in "0123456789" for c in password):
            problems.append("digit required")
        if self.require_special and not any(c in SPECIAL_CHARACTERS for c in password):
            problems.append("special character required")

        return problems
