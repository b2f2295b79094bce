"""Google Sign-In bridge."""

from typing import Any, Mapping

from .base import CallbackIdentityProvider, ProviderCredential, ProviderError, text_or_none


class GoogleIdentityProvider(CallbackIdentityProvider):
    """Google Sign-In.

    The SDK result carries the ID token and the profile; the email is used
    for the account-existence check, the backend trusts only the token.
    """

    name = "google"

    def to_credential(self, result: Mapping[str, Any]) -> ProviderCredential:
        token = text_or_none(result.get("id_token") or result.get("idToken"))
        if token is None:
            raise ProviderError("Missing Google ID token", self.name)

        profile = result.get("profile") or {}
        return ProviderCredential(
            provider=self.name,
            identity_token=token,
            email=text_or_none(result.get("email") or profile.get("email")),
            display_name=text_or_none(result.get("name") or profile.get("name")),
        )
