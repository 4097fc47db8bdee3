"""Resolve OAuth identities to local users and store their provider tokens."""

import logging
from datetime import UTC, datetime, timedelta

from multitune.domain.dtos import ProviderProfile, TokenResult
from multitune.domain.entities import Provider, User
from multitune.domain.ports import ICredentialStore, IUserRepository

logger = logging.getLogger(__name__)

# Fallback username prefix when a profile has neither display name nor email
_USERNAME_PREFIXES = {"youtube": "yt", "spotify": "spotify", "google": "google"}


class IdentityService:
    """Find-or-create users for OAuth callbacks and link provider accounts."""

    def __init__(
        self, user_repository: IUserRepository, credential_store: ICredentialStore
    ) -> None:
        self._users = user_repository
        self._credentials = credential_store

    # Hey future me, the lookup order matters:
    # 1. the user who started the flow (userId carried in the OAuth state), if any
    # 2. an existing user with the same email (Google and YouTube share emails, so logging
    #    in with Google and linking YouTube lands on ONE account)
    # 3. a brand new user
    # The synthesized username is permanent, we never rename users on later logins.
    async def resolve_user(
        self, profile: ProviderProfile, user_id: int | None = None
    ) -> User:
        """Return the local user for an OAuth profile, creating one if needed."""
        if user_id is not None:
            user = await self._users.get_by_id(user_id)
            if user is not None:
                return user
            logger.warning(
                "OAuth state names unknown user %s, resolving by profile", user_id
            )

        if profile.email:
            user = await self._users.get_by_email(profile.email)
            if user is not None:
                return user

        username = await self._unique_username(self._base_username(profile))
        user = await self._users.create(username, profile.email)
        logger.info(
            "Created user %s (%s) from %s login", user.id, username, profile.provider
        )
        return user

    async def link_account(
        self,
        profile: ProviderProfile,
        tokens: TokenResult,
        user_id: int | None = None,
    ) -> User:
        """Resolve the user and store the provider tokens for later syncs.

        Plain Google sign-in only resolves the user; there is nothing to mirror.
        """
        user = await self.resolve_user(profile, user_id)
        if profile.provider not in {p.value for p in Provider}:
            return user

        expires_at = None
        if tokens.expires_in:
            expires_at = datetime.now(UTC) + timedelta(seconds=tokens.expires_in)
        await self._credentials.upsert(
            user.id,
            profile.provider,
            tokens.access_token,
            refresh_token=tokens.refresh_token,
            expires_at=expires_at,
        )
        logger.info("Linked %s account for user %s", profile.provider, user.id)
        return user

    @staticmethod
    def _base_username(profile: ProviderProfile) -> str:
        if profile.display_name:
            return profile.display_name
        if profile.email:
            return profile.email
        prefix = _USERNAME_PREFIXES.get(profile.provider, profile.provider)
        return f"{prefix}_{profile.account_id}"

    async def _unique_username(self, base: str) -> str:
        # "Jane Doe", "Jane Doe_2", "Jane Doe_3", ...
        candidate = base
        suffix = 2
        while await self._users.get_by_username(candidate) is not None:
            candidate = f"{base}_{suffix}"
            suffix += 1
        return candidate
