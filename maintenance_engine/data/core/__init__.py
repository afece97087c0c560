from .user_created_base import UserCreatedBase

__all__ = ['UserCreatedBase']
