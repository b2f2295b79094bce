"""
Profile completion evaluation.

A profile is complete when it has a photo, a phone number and a location
(country and city). The session manager re-evaluates on every user change
and raises a "complete your profile" prompt at most once per session.
"""

from dataclasses import dataclass
from typing import Optional

from .models import AppUser


def _blank(value: Optional[str]) -> bool:
    return value is None or value.strip() == ""


def missing_avatar(user: AppUser) -> bool:
    """An explicit has_photo flag wins over the avatar reference."""
    if user.has_photo is not None:
        return not user.has_photo
    return _blank(user.avatar_url)


def needs_profile_completion(user: Optional[AppUser]) -> bool:
    """True when the user must be routed to the profile completion flow."""
    if user is None:
        return True
    return (
        missing_avatar(user)
        or _blank(user.phone)
        or _blank(user.country)
        or _blank(user.city)
    )


@dataclass(frozen=True)
class ProfileCompletion:
    """Outcome of one evaluation."""

    requires_completion: bool
    show_prompt: bool


class ProfilePromptTracker:
    """Remembers whether the one-shot prompt was already raised this session."""

    def __init__(self) -> None:
        self._prompt_shown = False

    @property
    def prompt_shown(self) -> bool:
        return self._prompt_shown

    def evaluate(self, user: Optional[AppUser]) -> ProfileCompletion:
        requires = needs_profile_completion(user)
        show = requires and not self._prompt_shown
        if show:
            self._prompt_shown = True
        return ProfileCompletion(requires_completion=requires, show_prompt=show)

    def reset(self) -> None:
        """Forget the prompt; only logout ends a session."""
        self._prompt_shown = False
