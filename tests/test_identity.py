import pytest

from identity import DisabledIdentityProvider, IdentityProvider, IdentityProviderError, get_identity_provider


def test_provider_must_implement_every_call():
    class SignInOnly(IdentityProvider):
        def sign_in(self, email, password):
            return "uid"

    with pytest.raises(TypeError):
        SignInOnly()


def test_disabled_provider_is_the_default():
    provider = get_identity_provider()
    assert isinstance(provider, DisabledIdentityProvider)
    with pytest.raises(IdentityProviderError) as exc:
        provider.create_user("fox@example.com", "trustno1", "Fox")
    assert exc.value.code == "auth/unavailable"
