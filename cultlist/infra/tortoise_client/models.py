"""
Tortoise ORM models for the user store
"""
from tortoise.models import Model
from tortoise import fields
from uuid import uuid4


class User(Model):
    id = fields.UUIDField(primary_key=True, default=uuid4)
    username = fields.CharField(max_length=255, unique=True)
    email = fields.CharField(max_length=255, unique=True)
    password = fields.CharField(max_length=255)
    first_name = fields.CharField(max_length=255, null=True)
    last_name = fields.CharField(max_length=255, null=True)
    bio = fields.TextField(null=True)
    created_at = fields.DatetimeField(auto_now_add=True, index=True)

    class Meta:
        table = "users"
