"""
Decoding of discovery and key-set documents.

Both functions are pure: they never touch the cache or the network.
"""

import json
from typing import Any, Dict, List

from pydantic import ValidationError as PydanticValidationError

from shared.errors import MetadataParseError
from .models import OidcConfiguration, SigningKey


def _load_object(text: str, document: str) -> Dict[str, Any]:
    if text is None:
        raise MetadataParseError(f"The {document} document is missing")
    try:
        payload = json.loads(text)
    except (TypeError, ValueError) as exc:
        raise MetadataParseError(
            f"The {document} document is not valid JSON",
            details={"error": str(exc)},
        ) from exc

    if payload is None:
        raise MetadataParseError(f"The {document} document decoded to nothing")
    if not isinstance(payload, dict):
        raise MetadataParseError(
            f"The {document} document must be a JSON object",
            details={"type": type(payload).__name__},
        )
    return payload


def parse_configuration(text: str) -> OidcConfiguration:
    """Decode a discovery document.

    Member names are matched case-insensitively against the snake_case
    fields of :class:`OidcConfiguration`, so ``JWKS_URI`` and ``jwks_uri``
    land in the same place. Null members are treated as absent.
    """
    payload = _load_object(text, "discovery")
    members = {name.lower(): value for name, value in payload.items() if value is not None}
    members.pop("signing_keys", None)

    try:
        return OidcConfiguration.model_validate(members)
    except PydanticValidationError as exc:
        raise MetadataParseError(
            "Unable to deserialize the OpenID Connect configuration",
            details={"error": str(exc)},
        ) from exc


def parse_key_set(text: str) -> List[SigningKey]:
    """Decode a JSON Web Key Set, keeping every key in document order."""
    payload = _load_object(text, "key set")
    keys = payload.get("keys")
    if keys is None:
        return []
    if not isinstance(keys, list):
        raise MetadataParseError("The key set 'keys' member must be an array")

    try:
        return [SigningKey.model_validate(entry) for entry in keys]
    except PydanticValidationError as exc:
        raise MetadataParseError(
            "Unable to deserialize the JSON web key set",
            details={"error": str(exc)},
        ) from exc
