"""
Data models for identity provider metadata.
"""

from dataclasses import dataclass
from typing import Any, Dict, Generic, List, Optional, TypeVar

from jose import jwk
from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    """Result of a cache lookup.

    ``value`` is only meaningful when ``is_valid`` is true; a miss always
    carries ``None`` and must not be read as an empty result.
    """

    is_valid: bool = False
    value: Optional[T] = None

    @classmethod
    def hit(cls, value: T) -> "CacheEntry[T]":
        return cls(is_valid=True, value=value)

    @classmethod
    def miss(cls) -> "CacheEntry[T]":
        return cls()


class SigningKey(BaseModel):
    """One entry of a JSON Web Key Set, fields kept as published."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    kty: Optional[str] = None
    use: Optional[str] = None
    alg: Optional[str] = None
    kid: Optional[str] = None
    key_ops: Optional[List[str]] = None

    # RSA
    n: Optional[str] = None
    e: Optional[str] = None
    # EC
    crv: Optional[str] = None
    x: Optional[str] = None
    y: Optional[str] = None
    # Symmetric
    k: Optional[str] = None

    x5c: Optional[List[str]] = None
    x5t: Optional[str] = None
    x5t_s256: Optional[str] = Field(default=None, alias="x5t#S256")

    def to_jwk(self) -> Dict[str, Any]:
        """Return the key as a JWK dictionary using the published member names."""
        return self.model_dump(by_alias=True, exclude_none=True)

    def construct(self, algorithm: Optional[str] = None):
        """Build a python-jose key object usable for signature checks."""
        return jwk.construct(self.to_jwk(), algorithm=algorithm or self.alg)


class OidcConfiguration(BaseModel):
    """OpenID Connect discovery metadata plus the signing keys it references."""

    model_config = ConfigDict(extra="allow")

    issuer: str = ""
    authorization_endpoint: str = ""
    token_endpoint: str = ""
    jwks_uri: str = ""

    userinfo_endpoint: str = ""
    end_session_endpoint: str = ""
    introspection_endpoint: str = ""
    revocation_endpoint: str = ""
    registration_endpoint: str = ""
    check_session_iframe: str = ""

    response_types_supported: List[str] = Field(default_factory=list)
    response_modes_supported: List[str] = Field(default_factory=list)
    grant_types_supported: List[str] = Field(default_factory=list)
    scopes_supported: List[str] = Field(default_factory=list)
    subject_types_supported: List[str] = Field(default_factory=list)
    claims_supported: List[str] = Field(default_factory=list)
    id_token_signing_alg_values_supported: List[str] = Field(default_factory=list)
    token_endpoint_auth_methods_supported: List[str] = Field(default_factory=list)
    code_challenge_methods_supported: List[str] = Field(default_factory=list)

    # Populated from the key-set document, never from the discovery document
    signing_keys: List[SigningKey] = Field(default_factory=list, exclude=True)

    def get_signing_key(self, kid: str) -> Optional[SigningKey]:
        """Return the first signing key with the given key id."""
        for key in self.signing_keys:
            if key.kid == kid:
                return key
        return None
