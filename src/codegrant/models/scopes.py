"""Permission scopes requested from and granted by the provider.

Scope lists are plain lists of strings so scopes the catalogue below does
not know yet still round-trip. :class:`Scope` members are ``str`` values and
can be mixed freely with raw strings.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from enum import Enum


class Scope(str, Enum):
    """Known Twitch permission scopes."""

    ANALYTICS_READ_EXTENSIONS = "analytics:read:extensions"
    ANALYTICS_READ_GAMES = "analytics:read:games"
    BITS_READ = "bits:read"
    CHANNEL_BOT = "channel:bot"
    CHANNEL_EDIT_COMMERCIAL = "channel:edit:commercial"
    CHANNEL_MANAGE_ADS = "channel:manage:ads"
    CHANNEL_MANAGE_BROADCAST = "channel:manage:broadcast"
    CHANNEL_MANAGE_EXTENSIONS = "channel:manage:extensions"
    CHANNEL_MANAGE_MODERATORS = "channel:manage:moderators"
    CHANNEL_MANAGE_POLLS = "channel:manage:polls"
    CHANNEL_MANAGE_PREDICTIONS = "channel:manage:predictions"
    CHANNEL_MANAGE_RAIDS = "channel:manage:raids"
    CHANNEL_MANAGE_REDEMPTIONS = "channel:manage:redemptions"
    CHANNEL_MANAGE_SCHEDULE = "channel:manage:schedule"
    CHANNEL_MANAGE_VIDEOS = "channel:manage:videos"
    CHANNEL_MANAGE_VIPS = "channel:manage:vips"
    CHANNEL_MODERATE = "channel:moderate"
    CHANNEL_READ_ADS = "channel:read:ads"
    CHANNEL_READ_CHARITY = "channel:read:charity"
    CHANNEL_READ_EDITORS = "channel:read:editors"
    CHANNEL_READ_GOALS = "channel:read:goals"
    CHANNEL_READ_HYPE_TRAIN = "channel:read:hype_train"
    CHANNEL_READ_POLLS = "channel:read:polls"
    CHANNEL_READ_PREDICTIONS = "channel:read:predictions"
    CHANNEL_READ_REDEMPTIONS = "channel:read:redemptions"
    CHANNEL_READ_STREAM_KEY = "channel:read:stream_key"
    CHANNEL_READ_SUBSCRIPTIONS = "channel:read:subscriptions"
    CHANNEL_READ_VIPS = "channel:read:vips"
    CHAT_EDIT = "chat:edit"
    CHAT_READ = "chat:read"
    CLIPS_EDIT = "clips:edit"
    MODERATION_READ = "moderation:read"
    MODERATOR_MANAGE_ANNOUNCEMENTS = "moderator:manage:announcements"
    MODERATOR_MANAGE_AUTOMOD = "moderator:manage:automod"
    MODERATOR_MANAGE_AUTOMOD_SETTINGS = "moderator:manage:automod_settings"
    MODERATOR_MANAGE_BANNED_USERS = "moderator:manage:banned_users"
    MODERATOR_MANAGE_BLOCKED_TERMS = "moderator:manage:blocked_terms"
    MODERATOR_MANAGE_CHAT_MESSAGES = "moderator:manage:chat_messages"
    MODERATOR_MANAGE_CHAT_SETTINGS = "moderator:manage:chat_settings"
    MODERATOR_MANAGE_SHIELD_MODE = "moderator:manage:shield_mode"
    MODERATOR_MANAGE_SHOUTOUTS = "moderator:manage:shoutouts"
    MODERATOR_READ_AUTOMOD_SETTINGS = "moderator:read:automod_settings"
    MODERATOR_READ_BLOCKED_TERMS = "moderator:read:blocked_terms"
    MODERATOR_READ_CHAT_SETTINGS = "moderator:read:chat_settings"
    MODERATOR_READ_CHATTERS = "moderator:read:chatters"
    MODERATOR_READ_FOLLOWERS = "moderator:read:followers"
    MODERATOR_READ_SHIELD_MODE = "moderator:read:shield_mode"
    MODERATOR_READ_SHOUTOUTS = "moderator:read:shoutouts"
    USER_BOT = "user:bot"
    USER_EDIT = "user:edit"
    USER_EDIT_BROADCAST = "user:edit:broadcast"
    USER_MANAGE_BLOCKED_USERS = "user:manage:blocked_users"
    USER_MANAGE_CHAT_COLOR = "user:manage:chat_color"
    USER_MANAGE_WHISPERS = "user:manage:whispers"
    USER_READ_BLOCKED_USERS = "user:read:blocked_users"
    USER_READ_BROADCAST = "user:read:broadcast"
    USER_READ_CHAT = "user:read:chat"
    USER_READ_EMAIL = "user:read:email"
    USER_READ_FOLLOWS = "user:read:follows"
    USER_READ_MODERATED_CHANNELS = "user:read:moderated_channels"
    USER_READ_SUBSCRIPTIONS = "user:read:subscriptions"
    USER_WRITE_CHAT = "user:write:chat"
    WHISPERS_EDIT = "whispers:edit"
    WHISPERS_READ = "whispers:read"


def scope_value(scope: str) -> str:
    """Return the wire string for a scope member or raw scope string."""
    if isinstance(scope, Scope):
        return scope.value
    return str(scope)


def format_scopes(scopes: Iterable[str]) -> str:
    """Join scopes with single spaces, in the given order."""
    return " ".join(scope_value(scope) for scope in scopes)


def parse_scopes(value: str | Sequence[str] | None) -> list[str]:
    """Parse a space-delimited scope string or a sequence of scopes.

    Providers disagree on the shape: the redirect carries a space-delimited
    string while some token endpoints answer with a JSON array.

    Raises:
        ValueError: If the value is neither a string nor a sequence of strings
    """
    if value is None:
        return []
    if isinstance(value, str):
        return value.split()
    if not isinstance(value, (list, tuple)):
        raise ValueError(
            f"scopes must be a string or a list, got {type(value).__name__}"
        )
    scopes = []
    for scope in value:
        if not isinstance(scope, str):
            raise ValueError(f"scope must be a string, got {type(scope).__name__}")
        scopes.append(scope_value(scope))
    return scopes
