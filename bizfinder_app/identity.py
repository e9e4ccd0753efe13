"""
Signed-in user session.

The identity provider owns the user record; the app only reads it and writes
the ``unsafe_metadata`` bag (role, gender, onboarding flag, subscription).
Writes go through the backend identity proxy.
"""

import logging

from bizfinder_app.api_client import BackendClient
from bizfinder_app.errors import ValidationFailed

logger = logging.getLogger(__name__)

ROLES = ("client", "owner", "admin")


class UserSession:
    def __init__(self, client: BackendClient, user: dict):
        self.client = client
        self._user = user

    @classmethod
    async def load(cls, client: BackendClient, user_id: str) -> "UserSession":
        return cls(client, await client.get_user(user_id))

    @property
    def id(self) -> str:
        return self._user["id"]

    @property
    def email(self) -> str | None:
        return self._user.get("email")

    @property
    def unsafe_metadata(self) -> dict:
        return dict(self._user.get("unsafeMetadata") or {})

    @property
    def role(self) -> str:
        role = self.unsafe_metadata.get("role")
        return role if role in ROLES else "client"

    @property
    def subscription(self) -> dict | None:
        return self.unsafe_metadata.get("subscription")

    @property
    def onboarding_completed(self) -> bool:
        return self.unsafe_metadata.get("onboarding_completed") is True

    async def update(self, *, unsafe_metadata: dict, **profile) -> None:
        """Write the whole metadata bag (callers spread the current one in)."""
        self._user = await self.client.update_user_metadata(self.id, unsafe_metadata, **profile)
        logger.info(
            "User %s metadata written: role=%s subscription=%s",
            self.id, unsafe_metadata.get("role"),
            (unsafe_metadata.get("subscription") or {}).get("id"),
        )

    async def reload(self) -> None:
        self._user = await self.client.get_user(self.id)

    async def complete_onboarding(
        self, full_name: str, username: str, gender: str, role: str = "client",
    ) -> None:
        full_name = full_name.strip()
        username = username.strip()
        if not full_name or not username:
            raise ValidationFailed("Full name and username are required")
        if role not in ("client", "owner"):
            raise ValidationFailed(f"Invalid role: {role}")

        first_name, _, last_name = full_name.partition(" ")
        await self.update(
            unsafe_metadata={
                **self.unsafe_metadata,
                "gender": gender,
                "role": role,
                "onboarding_completed": True,
            },
            username=username,
            firstName=first_name,
            lastName=last_name.strip() or None,
        )
        await self.reload()
