from brokerdesk.authz.models import Role, User, UserClient

__all__ = [
    "Role",
    "User",
    "UserClient",
]
